from .settings import BuildConfig, Settings, load_build_config

__all__ = ["BuildConfig", "Settings", "load_build_config"]
