"""Unit tests for flow matrix construction."""

import logging
import random
from types import SimpleNamespace
from unittest.mock import patch

import pytest

from circles_redeem.core.types import TransferStep, FlowEdge, Stream, canonical_address
from circles_redeem.core.flow_matrix import (
    MAX_FLOW_VERTICES,
    create_flow_matrix,
    flow_matrix_to_abi,
    flow_matrix_to_abi_hex,
    pack_coordinates,
    unpack_coordinates,
    transform_to_flow_vertices,
)
from circles_redeem.core.exceptions import (
    FlowMatrixError,
    FlowMismatchError,
    InvalidAddressError,
    InvalidAmountError,
    VertexOverflowError,
)

ONE_CRC = "1000000000000000000"


def addr(value):
    """Canonical form of a short test address such as 0x52."""
    return canonical_address(value)


def step(from_addr, to_addr, token_owner, value):
    return TransferStep(
        from_address=from_addr,
        to_address=to_addr,
        token_owner=token_owner,
        value=value
    )


@pytest.fixture
def three_hop_transfers():
    """sender -> a5 -> 63 -> receiver, each leg carrying one CRC."""
    return [
        step("0x52", "0xa5", "0x52", ONE_CRC),
        step("0xa5", "0x63", "0x7b", ONE_CRC),
        step("0x63", "0xcf", "0xf7", ONE_CRC),
    ]


def _numbered(n):
    return '0x%040x' % n


class TestPackCoordinates:
    """Test coordinate packing."""

    def test_pack_coordinates(self):
        """Two coordinates pack to four big-endian bytes."""
        assert pack_coordinates([0x1234, 0x5678]) == "0x12345678"

    def test_pack_empty(self):
        assert pack_coordinates([]) == "0x"

    def test_pack_bounds(self):
        """Coordinates must fit in uint16."""
        assert pack_coordinates([0, 0xFFFF]) == "0x0000ffff"
        with pytest.raises(FlowMatrixError):
            pack_coordinates([0x10000])
        with pytest.raises(FlowMatrixError):
            pack_coordinates([-1])

    def test_unpack_coordinates(self):
        assert unpack_coordinates("0x12345678") == [0x1234, 0x5678]
        assert unpack_coordinates("0000ffff") == [0, 0xFFFF]

    def test_unpack_odd_length(self):
        with pytest.raises(FlowMatrixError):
            unpack_coordinates("0x123456")


class TestTransformToFlowVertices:
    """Test vertex collection and ordering."""

    def test_transform_to_flow_vertices(self):
        transfers = [step("0x1234", "0x5678", "0x9abc", "1000")]
        sorted_vertices, idx = transform_to_flow_vertices(transfers, "0x1234", "0x5678")

        assert len(sorted_vertices) == 3
        assert len(idx) == 3

    def test_source_and_sink_always_present(self):
        """Source and sink are vertices even if no transfer touches them."""
        transfers = [step("0x10", "0x20", "0x30", "5")]
        sorted_vertices, idx = transform_to_flow_vertices(transfers, "0x01", "0xff")

        assert addr("0x01") in idx
        assert addr("0xff") in idx
        assert sorted_vertices[0] == addr("0x01")
        assert sorted_vertices[-1] == addr("0xff")

    def test_numeric_ordering_and_case(self):
        """Mixed-case spellings of the same address collapse into one vertex."""
        upper = "0xABCDEF0000000000000000000000000000000001"
        lower = upper.lower()
        transfers = [step(upper, "0x02", lower, "1")]
        sorted_vertices, idx = transform_to_flow_vertices(transfers, lower, "0x02")

        assert sorted_vertices == [addr("0x02"), lower]
        assert idx == {addr("0x02"): 0, lower: 1}

    def test_invalid_address(self):
        with pytest.raises(InvalidAddressError):
            transform_to_flow_vertices([], "0xnothex", "0x02")


class TestCreateFlowMatrix:
    """Test create_flow_matrix."""

    def test_three_hop_chain(self, three_hop_transfers):
        """The canonical three hop example."""
        result = create_flow_matrix("0x52", "0xcf", ONE_CRC, three_hop_transfers)

        assert result.flow_vertices == [
            addr("0x52"), addr("0x63"), addr("0x7b"), addr("0xa5"), addr("0xcf"), addr("0xf7")
        ]
        assert result.flow_edges == [
            FlowEdge(stream_sink_id=0, amount=ONE_CRC),
            FlowEdge(stream_sink_id=0, amount=ONE_CRC),
            FlowEdge(stream_sink_id=1, amount=ONE_CRC),
        ]
        assert result.streams == [Stream(source_coordinate=0, flow_edge_ids=[2], data=b'')]
        assert result.packed_coordinates == "0x000000000003000200030001000500010004"
        assert result.source_coordinate == 0

    def test_source_coordinate_not_zero(self):
        """The source coordinate is the source's sorted position."""
        transfers = [step("0x90", "0x10", "0x90", "7")]
        result = create_flow_matrix("0x90", "0x10", "7", transfers)

        assert result.flow_vertices == [addr("0x10"), addr("0x90")]
        assert result.source_coordinate == 1
        assert result.streams[0].source_coordinate == 1
        assert result.packed_coordinates == "0x000100010000"

    def test_multiple_terminal_edges(self):
        """Every edge into the sink is terminal and the stream lists them in order."""
        transfers = [
            step("0x01", "0x09", "0x01", "300"),
            step("0x01", "0x05", "0x01", "700"),
            step("0x05", "0x09", "0x06", "700"),
        ]
        result = create_flow_matrix("0x01", "0x09", "1000", transfers)

        assert [e.stream_sink_id for e in result.flow_edges] == [1, 0, 1]
        assert result.streams[0].flow_edge_ids == [0, 2]

    def test_large_amounts_are_exact(self):
        """Amounts beyond 64 bits are summed exactly."""
        big = 2 ** 190 + 1
        transfers = [
            step("0x01", "0x09", "0x01", str(big)),
            step("0x01", "0x09", "0x02", str(big)),
        ]
        result = create_flow_matrix("0x01", "0x09", str(2 * big), transfers)

        assert sum(int(e.amount) for e in result.flow_edges if e.stream_sink_id == 1) == 2 * big

    def test_terminal_sum_mismatch(self):
        """Terminal edges delivering less than requested fail."""
        transfers = [step("0x52", "0xcf", "0x52", "100000000000000000")]

        with pytest.raises(FlowMismatchError) as exc_info:
            create_flow_matrix("0x52", "0xcf", ONE_CRC, transfers)

        assert exc_info.value.terminal_sum == 100000000000000000
        assert exc_info.value.expected == 10 ** 18
        assert "Terminal sum" in str(exc_info.value)

    def test_terminal_sum_exceeds_target(self):
        transfers = [step("0x52", "0xcf", "0x52", "11")]

        with pytest.raises(FlowMismatchError) as exc_info:
            create_flow_matrix("0x52", "0xcf", "10", transfers)

        assert exc_info.value.details == {'terminal_sum': '11', 'expected': '10'}

    def test_idempotent(self, three_hop_transfers):
        """Identical inputs give identical matrices."""
        first = create_flow_matrix("0x52", "0xcf", ONE_CRC, three_hop_transfers)
        second = create_flow_matrix("0x52", "0xcf", ONE_CRC, list(three_hop_transfers))

        assert first == second
        assert first.packed_coordinates_bytes == second.packed_coordinates_bytes

    def test_address_spelling_does_not_matter(self, three_hop_transfers):
        """Source and sink are matched case-insensitively."""
        lower = create_flow_matrix("0x52", "0xcf", ONE_CRC, three_hop_transfers)
        upper = create_flow_matrix("0X52", "0xCF", ONE_CRC, three_hop_transfers)

        assert lower == upper

    def test_empty_transfers(self):
        with pytest.raises(FlowMatrixError):
            create_flow_matrix("0x01", "0x02", "1", [])


class TestTerminalEdgeFallback:
    """Paths that never reach the sink."""

    def test_last_edge_promoted(self, caplog):
        """The last edge becomes terminal and a warning names it."""
        transfers = [
            step("0x01", "0x05", "0x01", "10"),
            step("0x05", "0x06", "0x05", "10"),
        ]

        with caplog.at_level(logging.WARNING, logger="circles_redeem.core.flow_matrix"):
            result = create_flow_matrix("0x01", "0x09", "10", transfers)

        assert [e.stream_sink_id for e in result.flow_edges] == [0, 1]
        assert result.streams[0].flow_edge_ids == [1]
        assert any(
            record.levelno == logging.WARNING and "does not reach sink" in record.getMessage()
            for record in caplog.records
        )

    def test_promoted_edge_amount_still_checked(self, caplog):
        """A promoted edge carrying the wrong amount is still a mismatch."""
        transfers = [step("0x01", "0x05", "0x01", "3")]

        with caplog.at_level(logging.WARNING, logger="circles_redeem.core.flow_matrix"):
            with pytest.raises(FlowMismatchError):
                create_flow_matrix("0x01", "0x09", "10", transfers)

        assert "promoting last edge 0" in caplog.text

    def test_no_warning_when_sink_reached(self, caplog, three_hop_transfers):
        with caplog.at_level(logging.WARNING, logger="circles_redeem.core.flow_matrix"):
            create_flow_matrix("0x52", "0xcf", ONE_CRC, three_hop_transfers)

        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]


class TestInvalidAmounts:
    """Test amount validation."""

    @pytest.mark.parametrize("value", ["abc", "-5", "1.5", "1e18", " 10", "10\n", "0x10", "", "1_000"])
    def test_invalid_target(self, value, three_hop_transfers):
        with pytest.raises(InvalidAmountError) as exc_info:
            create_flow_matrix("0x52", "0xcf", value, three_hop_transfers)

        assert exc_info.value.value == value

    def test_invalid_transfer_value(self):
        """Transfer values are checked too, even when they bypass model validation."""
        transfers = [SimpleNamespace(
            from_address="0x01",
            to_address="0x02",
            token_owner="0x01",
            value="-10"
        )]

        with pytest.raises(InvalidAmountError):
            create_flow_matrix("0x01", "0x02", "10", transfers)

    def test_trailing_newline_in_transfer_value(self):
        transfers = [SimpleNamespace(
            from_address="0x01",
            to_address="0x02",
            token_owner="0x01",
            value="10\n"
        )]

        with pytest.raises(InvalidAmountError):
            create_flow_matrix("0x01", "0x02", "10", transfers)


class TestVertexLimit:
    """Test the uint16 coordinate space."""

    def test_vertex_overflow(self):
        """65537 distinct vertices fail before any coordinate is packed."""
        transfers = [
            step(_numbered(3 * i + 10), _numbered(3 * i + 11), _numbered(3 * i + 12), "1")
            for i in range(21845)
        ]

        with patch("circles_redeem.core.flow_matrix.pack_coordinates") as mock_pack:
            with pytest.raises(VertexOverflowError) as exc_info:
                create_flow_matrix(_numbered(1), _numbered(2), "1", transfers)

        mock_pack.assert_not_called()
        assert exc_info.value.vertex_count == MAX_FLOW_VERTICES + 1
        assert exc_info.value.limit == 65536

    def test_vertex_limit_exactly_reached(self):
        """65536 distinct vertices still fit."""
        transfers = [
            step(_numbered(3 * i + 10), _numbered(3 * i + 11), _numbered(3 * i + 12), "1")
            for i in range(21844)
        ]
        last_from = _numbered(10 ** 9)
        last_owner = _numbered(10 ** 9 + 1)
        transfers.append(step(last_from, _numbered(2), last_owner, "5"))

        result = create_flow_matrix(_numbered(1), _numbered(2), "5", transfers)

        assert len(result.flow_vertices) == MAX_FLOW_VERTICES
        assert max(unpack_coordinates(result.packed_coordinates)) == MAX_FLOW_VERTICES - 1
        assert result.streams[0].flow_edge_ids == [len(transfers) - 1]


class TestMatrixProperties:
    """Structural properties over generated transfer lists."""

    @staticmethod
    def _random_path(rng):
        source = _numbered(rng.randrange(1, 2 ** 160))
        sink = _numbered(rng.randrange(1, 2 ** 160))
        pool = [_numbered(rng.randrange(1, 2 ** 160)) for _ in range(rng.randint(1, 12))]
        transfers = []
        target = 0
        for _ in range(rng.randint(1, 20)):
            from_addr = rng.choice(pool + [source])
            to_addr = rng.choice(pool + [sink])
            value = rng.randrange(1, 2 ** 100)
            if to_addr == sink:
                target += value
            transfers.append(step(from_addr, to_addr, rng.choice(pool), str(value)))
        # Make sure the path reaches the sink
        value = rng.randrange(1, 2 ** 100)
        transfers.append(step(rng.choice(pool), sink, rng.choice(pool), str(value)))
        return source, sink, str(target + value), transfers

    @pytest.mark.parametrize("seed", range(25))
    def test_invariants(self, seed):
        source, sink, target, transfers = self._random_path(random.Random(seed))

        result = create_flow_matrix(source, sink, target, transfers)

        vertices = result.flow_vertices
        values = [int(v, 16) for v in vertices]
        assert values == sorted(set(values))
        assert canonical_address(source) in vertices
        assert canonical_address(sink) in vertices

        assert len(result.flow_edges) == len(transfers)
        assert [e.amount for e in result.flow_edges] == [str(int(t.value)) for t in transfers]

        terminal = [e for e in result.flow_edges if e.stream_sink_id == 1]
        assert terminal
        assert sum(int(e.amount) for e in terminal) == int(target)

        assert len(result.packed_coordinates_bytes) == 6 * len(transfers)
        coords = unpack_coordinates(result.packed_coordinates)
        for i, transfer in enumerate(transfers):
            owner, frm, to = coords[3 * i:3 * i + 3]
            assert vertices[owner] == transfer.token_owner
            assert vertices[frm] == transfer.from_address
            assert vertices[to] == transfer.to_address

        assert len(result.streams) == 1
        stream = result.streams[0]
        assert vertices[stream.source_coordinate] == canonical_address(source)
        assert all(result.flow_edges[i].stream_sink_id == 1 for i in stream.flow_edge_ids)
        assert stream.data == b''


class TestABIConversion:
    """Test conversion to the settlement call shape."""

    def test_flow_matrix_to_abi(self, three_hop_transfers):
        matrix = create_flow_matrix("0x52", "0xcf", ONE_CRC, three_hop_transfers)

        abi = flow_matrix_to_abi(matrix)

        assert abi['_flowVertices'] == matrix.flow_vertices
        assert abi['_flow'] == [
            {'streamSinkId': 0, 'amount': 10 ** 18},
            {'streamSinkId': 0, 'amount': 10 ** 18},
            {'streamSinkId': 1, 'amount': 10 ** 18},
        ]
        assert abi['_streams'] == [{'sourceCoordinate': 0, 'flowEdgeIds': [2], 'data': b''}]
        assert abi['_packedCoordinates'] == bytes.fromhex("000000000003000200030001000500010004")

    def test_flow_matrix_to_abi_hex(self, three_hop_transfers):
        matrix = create_flow_matrix("0x52", "0xcf", ONE_CRC, three_hop_transfers)

        abi = flow_matrix_to_abi_hex(matrix)

        assert abi['_packedCoordinates'] == "0x000000000003000200030001000500010004"
        assert abi['_streams'][0]['data'] == "0x"
