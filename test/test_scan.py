import threading

import pytest

from rendezvous_mission.core import (
    CancellationToken,
    DetectionLatch,
    FrameResolver,
    FrameUnavailable,
    MarkerScanController,
    MissionCancelled,
    ScanState,
    ScanTimeout,
)

from conftest import (
    FakeBroadcaster,
    FakeDetectionSource,
    FakeTransformLookup,
    FakeVelocitySink,
    detection,
    world,
)


def _scanner(runtime, lookup=None, source=None, **kwargs):
    source = source or FakeDetectionSource()
    velocity = FakeVelocitySink()
    broadcaster = FakeBroadcaster()
    lookup = lookup or FakeTransformLookup([world(1.4, 1.6)])
    resolver = FrameResolver(lookup, runtime, backoff_s=1.0)
    scanner = MarkerScanController(
        runtime,
        source,
        velocity,
        resolver,
        broadcaster=broadcaster,
        distance_threshold=3.0,
        angular_speed=0.1,
        **kwargs,
    )
    return scanner, source, velocity, broadcaster


def test_rotates_until_a_marker_is_seen(runtime):
    scanner, source, velocity, _ = _scanner(runtime)
    scanner.begin()

    assert source.subscribed
    assert scanner.state is ScanState.SCANNING
    assert scanner.step() is None
    assert scanner.step() is None
    assert velocity.commands == [0.1, 0.1]
    assert "Searching..." in runtime.logger.messages("info")


def test_far_markers_are_ignored(runtime):
    scanner, source, velocity, _ = _scanner(runtime)
    scanner.begin()
    source.emit(detection(1, x=3.5))
    source.emit(detection(1, x=3.0))

    assert scanner.step() is None
    assert not any("Marker found" in m for m in runtime.logger.messages())


def test_first_qualifying_detection_is_committed_once(runtime):
    scanner, source, velocity, broadcaster = _scanner(runtime)
    scanner.begin()
    source.emit(detection(2, x=1.5))
    source.emit(detection(3, x=0.5))

    committed = scanner.step()

    assert committed.marker_id == 2
    assert (committed.world_coordinate.x, committed.world_coordinate.y) == (1.4, 1.6)
    assert scanner.state is ScanState.COMMITTED
    assert velocity.commands[-1] == 0.0
    assert not source.subscribed
    assert [d.marker_id for d in broadcaster.broadcasts] == [2]
    assert "Marker found! Marker id is : 2" in runtime.logger.messages("info")

    scanner.on_detection(detection(5, x=0.5))
    assert not any("id is : 5" in m for m in runtime.logger.messages())
    assert not any("id is : 3" in m for m in runtime.logger.messages())


def test_transform_timeout_is_retried_after_backoff(runtime):
    lookup = FakeTransformLookup([TimeoutError("marker_frame not yet available"), world(1.4, 1.6)])
    scanner, source, _, broadcaster = _scanner(runtime, lookup=lookup)
    scanner.begin()
    source.emit(detection(2, x=1.5))

    committed = scanner.step()

    assert committed.marker_id == 2
    assert len(lookup.calls) == 2
    assert len(broadcaster.broadcasts) == 2
    assert runtime.sleeps == [1.0]
    assert any("Retrying position lookup" in m for m in runtime.logger.messages("info"))


def test_bounded_resolution_gives_up(runtime):
    lookup = FakeTransformLookup([LookupError("no tf"), LookupError("no tf")])
    scanner, source, _, _ = _scanner(runtime, lookup=lookup, max_resolve_attempts=2)
    scanner.begin()
    source.emit(detection(2, x=1.5))

    with pytest.raises(FrameUnavailable):
        scanner.step()
    assert len(lookup.calls) == 2


def test_scan_timeout_stops_rotation(runtime):
    scanner, source, velocity, _ = _scanner(runtime, timeout_s=2.0)
    scanner.begin()
    assert scanner.step() is None
    runtime.clock += 2.5

    with pytest.raises(ScanTimeout):
        scanner.step()
    assert velocity.commands[-1] == 0.0
    assert not source.subscribed
    assert scanner.state is ScanState.IDLE


def test_cancellation_is_checked_every_step(runtime):
    cancel = CancellationToken()
    scanner, _, _, _ = _scanner(runtime, cancel=cancel)
    scanner.begin()
    cancel.cancel("shutdown")
    with pytest.raises(MissionCancelled):
        scanner.step()


def test_step_outside_a_scan_is_an_error(runtime):
    scanner, _, _, _ = _scanner(runtime)
    with pytest.raises(RuntimeError):
        scanner.step()


def test_blocking_scan_pumps_events_until_commit(runtime):
    source = FakeDetectionSource([[detection(4, x=5.0), detection(1, x=0.8)]])
    runtime.hooks.append(source.pump)
    scanner, _, velocity, _ = _scanner(runtime, source=source)

    committed = scanner.scan(period_s=0.1)

    assert committed.marker_id == 1
    assert velocity.commands == [0.1, 0.1, 0.0]
    assert source.unsubscribe_count == 1


def test_abort_releases_subscription(runtime):
    scanner, source, velocity, _ = _scanner(runtime)
    scanner.begin()
    scanner.abort()
    assert not source.subscribed
    assert velocity.commands == [0.0]
    assert scanner.state is ScanState.IDLE


def test_latch_accepts_only_first_offer_across_threads():
    latch = DetectionLatch()
    barrier = threading.Barrier(8)
    winners = []

    def offer(marker_id):
        barrier.wait()
        if latch.offer(detection(marker_id)):
            winners.append(marker_id)

    threads = [threading.Thread(target=offer, args=(i,)) for i in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(winners) == 1
    assert latch.peek().marker_id == winners[0]
    latch.reset()
    assert latch.peek() is None
