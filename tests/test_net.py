"""
Unit Tests for atlas/core/net.py

Tests for:
    - split_host_port: plain, host:port, bracketed and bare IPv6, malformed input
    - make_node_id: identity token precedence, invalid addresses
    - edge_key: unordered pair key
"""

import pytest

from atlas.core.net import (
    INVALID_NODE_ID,
    HostPort,
    edge_key,
    format_host_port,
    make_node_id,
    normalize_host,
    split_host_port,
)


class TestSplitHostPort:

    @pytest.mark.parametrize("raw, expected", [
        ("10.0.0.1", HostPort("10.0.0.1")),
        ("10.0.0.1:16127", HostPort("10.0.0.1", 16127)),
        ("  10.0.0.1:80  ", HostPort("10.0.0.1", 80)),
        ("Node.Example.org:443", HostPort("Node.Example.org", 443)),
        ("[2001:db8::1]", HostPort("2001:db8::1")),
        ("[2001:db8::1]:16127", HostPort("2001:db8::1", 16127)),
        ("2001:db8::1", HostPort("2001:db8::1")),
    ])
    def test_valid_forms(self, raw, expected):
        assert split_host_port(raw) == expected

    @pytest.mark.parametrize("raw", [
        None, "", "   ", "10.0.0.1:", ":16127", "10.0.0.1:abc", "10.0.0.1:0",
        "10.0.0.1:70000", "[2001:db8::1", "2001:db8::1]", "[2001:db8::1]:x",
        "10.0.0.1 10.0.0.2",
    ])
    def test_malformed_is_invalid(self, raw):
        result = split_host_port(raw)
        assert result.host == INVALID_NODE_ID
        assert not result.valid

    def test_host_case_preserved(self):
        assert normalize_host("MiXeD.host:1") == "MiXeD.host"

    def test_brackets_stripped(self):
        assert normalize_host("[fe80::2]:9000") == "fe80::2"


class TestFormatHostPort:

    def test_ipv6_with_port_is_bracketed(self):
        assert format_host_port("fe80::2", 9000) == "[fe80::2]:9000"

    def test_no_port(self):
        assert format_host_port("fe80::2") == "fe80::2"
        assert format_host_port("10.0.0.1") == "10.0.0.1"

    def test_str_of_host_port(self):
        assert str(HostPort("10.0.0.1", 16127)) == "10.0.0.1:16127"


class TestMakeNodeId:

    def test_token_wins(self):
        assert make_node_id("10.0.0.1:16127", "abc123") == "abc123"

    def test_blank_token_falls_back_to_host(self):
        assert make_node_id("10.0.0.1:16127", "  ") == "10.0.0.1"
        assert make_node_id("[fe80::2]:1", None) == "fe80::2"

    def test_token_with_bad_address(self):
        assert make_node_id("not a host", "tok") == "tok"

    def test_invalid_without_token(self):
        assert make_node_id("10.0.0.1:x", None) == INVALID_NODE_ID
        assert make_node_id("", None) == INVALID_NODE_ID


def test_edge_key_is_unordered():
    assert edge_key("b", "a") == edge_key("a", "b") == "a|b"
