import base64

import pytest

from spfinder.errors import MissingPeerIdentity
from spfinder.gateway import MinerInfo
from spfinder.peers import (
    PeerAddressInfo,
    decode_multiaddr,
    decode_multiaddrs,
    format_addr_info,
    miner_info_to_addr_info,
)
from tests.helpers import (
    MALFORMED_MULTIADDR,
    UNKNOWN_PROTOCOL_MULTIADDR,
    encode_multiaddr,
    with_trailing_bytes,
)


class TestDecodeMultiaddrs:
    def test_keeps_order_and_drops_malformed(self):
        raw = [
            encode_multiaddr("/ip4/10.0.0.1/tcp/24001"),
            MALFORMED_MULTIADDR,
            encode_multiaddr("/ip4/192.168.1.20/udp/4001"),
            "not base64!!",
            base64.b64encode(b"").decode("ascii"),
            encode_multiaddr("/ip4/1.2.3.4/tcp/1234"),
        ]
        assert decode_multiaddrs(raw) == [
            "/ip4/10.0.0.1/tcp/24001",
            "/ip4/192.168.1.20/udp/4001",
            "/ip4/1.2.3.4/tcp/1234",
        ]

    def test_drops_unknown_protocol_and_trailing_bytes(self):
        raw = [
            UNKNOWN_PROTOCOL_MULTIADDR,
            encode_multiaddr("/ip4/10.0.0.1/tcp/24001"),
            with_trailing_bytes("/ip4/10.0.0.2/tcp/24001", b"\x06"),
            encode_multiaddr("/ip4/10.0.0.3/udp/4001"),
            with_trailing_bytes("/ip4/10.0.0.4/tcp/24001", b"\x04\x7f"),
        ]
        assert decode_multiaddrs(raw) == ["/ip4/10.0.0.1/tcp/24001", "/ip4/10.0.0.3/udp/4001"]

    @pytest.mark.parametrize(
        "raw",
        [
            MALFORMED_MULTIADDR,
            UNKNOWN_PROTOCOL_MULTIADDR,
            with_trailing_bytes("/ip4/10.0.0.1/tcp/24001", b"\x06"),
        ],
    )
    def test_rejected_inputs(self, raw):
        assert decode_multiaddr(raw) is None

    def test_none_means_no_addresses(self):
        assert decode_multiaddrs(None) == []

    def test_malformed_returns_none(self):
        assert decode_multiaddr(MALFORMED_MULTIADDR) is None


class TestMinerInfoToAddrInfo:
    def test_single_provider_lookup(self):
        info = MinerInfo(
            peer_id="12D3KooWExample",
            multiaddrs=[encode_multiaddr("/ip4/10.0.0.1/tcp/24001"), MALFORMED_MULTIADDR],
        )
        addr_info = miner_info_to_addr_info(info, "t01000")

        assert addr_info == PeerAddressInfo(identity="12D3KooWExample", addrs=["/ip4/10.0.0.1/tcp/24001"])
        assert format_addr_info(addr_info) == [
            "PeerID: 12D3KooWExample",
            "Addrs:",
            "   /ip4/10.0.0.1/tcp/24001",
        ]

    def test_missing_peer_id_raises(self):
        with pytest.raises(MissingPeerIdentity, match="t01000"):
            miner_info_to_addr_info(MinerInfo(multiaddrs=[]), "t01000")

    def test_no_addrs_section_without_addresses(self):
        assert format_addr_info(PeerAddressInfo(identity="12D3KooWExample")) == ["PeerID: 12D3KooWExample"]
