import pytest

from rendezvous_mission.core import (
    AgentUnreachable,
    CancellationToken,
    Goal,
    GoalDispatcher,
    GoalInFlight,
    GoalState,
    MissionCancelled,
)

from conftest import ScriptedGoalClient


def _goal(x: float, y: float) -> Goal:
    return Goal("map", x, y)


def test_poll_is_pending_before_first_dispatch(runtime):
    dispatcher = GoalDispatcher("explorer", ScriptedGoalClient("explorer", []), runtime)
    assert dispatcher.poll() is GoalState.PENDING
    assert dispatcher.current_goal is None


def test_dispatch_waits_for_server_and_logs_each_attempt(runtime):
    client = ScriptedGoalClient("explorer", [], server_up=[False, False, True])
    dispatcher = GoalDispatcher("explorer", client, runtime, server_wait_s=5.0)

    dispatcher.dispatch(_goal(1.0, 2.0))

    waits = [m for m in runtime.logger.messages("info") if "Waiting for the navigation action server" in m]
    assert len(waits) == 2
    assert client.sent == [_goal(1.0, 2.0)]
    assert dispatcher.dispatch_count == 1


def test_bounded_server_wait_raises_agent_unreachable(runtime):
    client = ScriptedGoalClient("follower", [], server_up=[False, False, False])
    dispatcher = GoalDispatcher("follower", client, runtime, max_server_waits=2)
    with pytest.raises(AgentUnreachable) as excinfo:
        dispatcher.dispatch(_goal(0.0, 0.0))
    assert excinfo.value.agent == "follower"
    assert excinfo.value.attempts == 2
    assert client.sent == []


def test_cancellation_interrupts_server_wait(runtime):
    cancel = CancellationToken()
    cancel.cancel("operator stop")
    dispatcher = GoalDispatcher("explorer", ScriptedGoalClient("explorer", []), runtime, cancel=cancel)
    with pytest.raises(MissionCancelled, match="operator stop"):
        dispatcher.dispatch(_goal(0.0, 0.0))


def test_second_goal_is_refused_while_first_is_active(runtime):
    client = ScriptedGoalClient("explorer", [], hold=True)
    dispatcher = GoalDispatcher("explorer", client, runtime)
    dispatcher.dispatch(_goal(1.0, 1.0))
    assert dispatcher.poll() is GoalState.ACTIVE

    with pytest.raises(GoalInFlight):
        dispatcher.dispatch(_goal(2.0, 2.0))

    client.finish(GoalState.SUCCEEDED)
    assert dispatcher.poll() is GoalState.SUCCEEDED
    dispatcher.dispatch(_goal(2.0, 2.0))
    assert [g.x for g in client.sent] == [1.0, 2.0]


def test_server_is_only_awaited_once(runtime):
    client = ScriptedGoalClient("explorer", [], server_up=[False, True])
    dispatcher = GoalDispatcher("explorer", client, runtime)
    dispatcher.dispatch(_goal(1.0, 1.0))
    client.finish(GoalState.ABORTED)
    dispatcher.dispatch(_goal(1.0, 1.0))
    waits = [m for m in runtime.logger.messages("info") if "Waiting" in m]
    assert len(waits) == 1
    assert dispatcher.dispatch_count == 2


def test_cancel_only_reaches_agent_with_goal_in_flight(runtime):
    client = ScriptedGoalClient("explorer", [], hold=True)
    dispatcher = GoalDispatcher("explorer", client, runtime)
    assert dispatcher.cancel() is False

    dispatcher.dispatch(_goal(1.0, 1.0))
    assert dispatcher.cancel() is True
    assert client.cancels == 1
    assert dispatcher.poll() is GoalState.ABORTED

    assert dispatcher.cancel() is False
    assert client.cancels == 1
