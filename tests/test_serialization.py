"""
Enhanced JSON serialization tests
"""

import math
import pickle
from datetime import datetime, timezone

import pytest

from ipc_events.utils.serialization import UNDEFINED, dumps, loads


class TestDumps:
    """Test encoding"""

    def test_compact_json(self):
        """Test plain values encode as compact JSON"""
        assert dumps([{"foo": "bar"}]) == '[{"foo":"bar"}]'
        assert dumps([1, 2.5, True, None, "x"]) == '[1,2.5,true,null,"x"]'

    def test_non_ascii_kept(self):
        """Test non-ASCII text is written as is"""
        assert dumps(["héllo"]) == '["héllo"]'

    def test_tuples_encode_as_lists(self):
        """Test tuples become arrays"""
        assert dumps((1, (2, 3))) == "[1,[2,3]]"

    def test_tagged_values(self):
        """Test values plain JSON loses are tagged"""
        assert dumps([math.nan, math.inf, -math.inf]) == '[":NaN",":Infinity",":-Infinity"]'
        assert dumps([b"hi"]) == '[":base64:aGk="]'
        assert dumps([UNDEFINED]) == '[":undefined"]'
        assert dumps([":colon"]) == '["::colon"]'

    def test_unsupported_type(self):
        """Test objects without an encoding are rejected"""
        with pytest.raises(TypeError, match="set"):
            dumps([{1, 2}])


class TestLoads:
    """Test decoding"""

    def test_plain_json(self):
        """Test untagged JSON from any encoder decodes as is"""
        assert loads('[{"foo":"bar"}]') == [{"foo": "bar"}]

    def test_round_trip_rich_values(self):
        """Test tagged values come back as the original types"""
        moment = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)
        value = [b"\x00\xff", moment, ":x", "::y", UNDEFINED, {"inner": [math.inf, None]}]

        assert loads(dumps(value)) == value

    def test_nan_round_trip(self):
        """Test NaN survives encoding"""
        assert math.isnan(loads(dumps([math.nan]))[0])

    def test_unknown_tag_kept(self):
        """Test a tag this codec does not know stays a string"""
        assert loads('[":future"]') == [":future"]

    def test_invalid_json(self):
        """Test malformed text raises ValueError"""
        with pytest.raises(ValueError):
            loads("[1,")


class TestUndefined:
    """Test the absent value marker"""

    def test_distinct_from_none(self):
        """Test UNDEFINED is falsy but not None"""
        assert not UNDEFINED
        assert UNDEFINED is not None
        assert repr(UNDEFINED) == "UNDEFINED"

    def test_singleton_survives_pickle(self):
        """Test UNDEFINED stays the same object across a pipe"""
        assert pickle.loads(pickle.dumps(UNDEFINED)) is UNDEFINED


@pytest.mark.benchmark
def test_large_payload_benchmark(benchmark):
    """Test encoding and decoding performance with a larger argument list"""
    payload = [{
        "array": list(range(1000)),
        "nested": {f"key_{i}": f"value_{i}" for i in range(100)},
        "blob": b"X" * 5000,
    }]

    result = benchmark(lambda: loads(dumps(payload)))

    assert result == payload
