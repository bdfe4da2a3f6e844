#!/usr/bin/env python3
"""
CLI script to run one atlas build.

Example usage:
    python bin/build_atlas.py --input output/peers.json --output output/atlas.json
    python bin/build_atlas.py --live --output output/atlas.json --verbose
"""
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import argparse
import asyncio
import logging
import random
from dataclasses import replace
from typing import List, Optional

from atlas.adapters.outbound import DirectoryCrawler, LocalFileStore, SnapshotPeerSource
from atlas.application.pipeline import build_atlas
from atlas.config import Settings, load_build_config
from atlas.core.models import PeerReport


def print_build_summary(build) -> None:
    """Print formatted build summary."""
    stats = build.stats
    print("\nBuild Complete!")
    print("-" * 30)
    print(f"  Build ID:    {build.build_id}")
    print(f"  Nodes:       {stats.get('totalNodes', 0)} "
          f"({stats.get('totalPrimaryNodes', 0)} primary, {stats.get('totalStubNodes', 0)} stub)")
    print(f"  Edges:       {stats.get('totalEdgesTrimmed', 0)} of {stats.get('totalEdgesRaw', 0)} raw")
    print(f"  Hubs:        {stats.get('hubCount', 0)} (threshold {build.meta.hub_threshold:.4f})")
    print(f"  Layout:      {build.meta.layout_strategy}")
    print(f"  Duration:    {build.duration_ms} ms")
    print("-" * 30)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Build the peer network atlas from a snapshot or a live crawl",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--input", help="Peer report snapshot (JSON)")
    source.add_argument("--live", action="store_true", help="Crawl the network directory")
    parser.add_argument("--output", default="output/atlas.json", help="Output JSON file")
    parser.add_argument("--config", help="YAML file with build config overrides")
    parser.add_argument("--seed", help="Layout seed string (default from environment)")
    parser.add_argument("--timestamp", type=int, help="Build start time in ms, for reproducible layouts")
    parser.add_argument("--max-degree", type=int, help="Per-node edge cap, 0 = unlimited")
    parser.add_argument("--max-edges", type=int, help="Global edge cap, 0 = unlimited")
    parser.add_argument("--max-stubs", type=int, help="Stub node cap, 0 drops all stubs")
    parser.add_argument("--no-external-peers", action="store_true", help="Drop unresolved peers instead of adding stubs")
    parser.add_argument("--layout-node-cap", type=int, help="Cluster count above which the force layout is skipped")
    parser.add_argument("--rng-seed", type=int, help="Seed for ambiguous peer tie breaks")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def collect_reports(args: argparse.Namespace, settings: Settings) -> List[PeerReport]:
    if args.live:
        return asyncio.run(DirectoryCrawler(settings).collect())
    return SnapshotPeerSource(args.input).load()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the atlas build CLI."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    for label, path in (("Input", args.input), ("Config", args.config)):
        if path and not Path(path).exists():
            print(f"Error: {label} file '{path}' not found.", file=sys.stderr)
            return 1

    settings = Settings.from_env()
    config = settings.build_config()
    if args.input:
        config = replace(config, source=str(Path(args.input)))

    overrides = {
        "layout_seed": args.seed,
        "max_node_degree": args.max_degree,
        "max_edges": args.max_edges,
        "max_stub_nodes": args.max_stubs,
        "layout_node_cap": args.layout_node_cap,
    }
    if args.no_external_peers:
        overrides["include_external_peers"] = False

    try:
        if args.config:
            config = load_build_config(Path(args.config), config)
        config = replace(config, **{k: v for k, v in overrides.items() if v is not None})
        reports = collect_reports(args, settings)
        rng = random.Random(args.rng_seed) if args.rng_seed is not None else None
        outcome = build_atlas(reports, config, started_at_ms=args.timestamp, rng=rng)
        LocalFileStore().write_json(args.output, outcome.build.to_dict())
    except Exception as e:
        print(f"Build failed: {e}", file=sys.stderr)
        return 1

    print_build_summary(outcome.build)
    print(f"Wrote {args.output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
