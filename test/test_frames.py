import pytest

from rendezvous_mission.core import FrameResolver, FrameUnavailable

from conftest import FakeTransformLookup, world


def test_resolve_returns_world_coordinate_and_logs_position(runtime):
    lookup = FakeTransformLookup([world(1.4, 1.6)])
    resolver = FrameResolver(lookup, runtime, timeout_s=4.0, backoff_s=1.0)

    coordinate = resolver.resolve("marker_frame", "map")

    assert (coordinate.x, coordinate.y) == (1.4, 1.6)
    assert lookup.calls == [("marker_frame", "map", None, 4.0)]
    assert "Position in map frame: [1.400, 1.600, 0.000]" in runtime.logger.messages("info")
    assert runtime.sleeps == []


@pytest.mark.parametrize("failure", [TimeoutError("timed out"), LookupError("no frame")])
def test_failure_backs_off_then_raises_frame_unavailable(runtime, failure):
    resolver = FrameResolver(FakeTransformLookup([failure]), runtime, backoff_s=1.0)

    with pytest.raises(FrameUnavailable) as excinfo:
        resolver.resolve("marker_frame", "map")

    assert excinfo.value.source_frame == "marker_frame"
    assert excinfo.value.target_frame == "map"
    assert runtime.sleeps == [1.0]
    assert runtime.logger.messages("warn")


def test_resolver_does_not_retry_internally(runtime):
    lookup = FakeTransformLookup([TimeoutError("slow"), world(0.0, 0.0)])
    resolver = FrameResolver(lookup, runtime, backoff_s=0.0)
    with pytest.raises(FrameUnavailable):
        resolver.resolve("marker_frame", "map", timeout_s=0.5)
    assert len(lookup.calls) == 1
    assert lookup.calls[0][3] == 0.5
    assert runtime.sleeps == []
