"""Tests for reconcile(): repairing inconsistent progress snapshots."""

import logging

from hero_campaign.definitions import STARSHIP_ESCAPE
from hero_campaign.graph import reconcile
from hero_campaign.models import NodeState, ProgressSnapshot

L = NodeState.LOCKED
U = NodeState.UNLOCKED
C = NodeState.COMPLETED
X = NodeState.BRANCH_LOCKED_OUT


def _snap(briefing, medical, armory, quarters, final, active=None) -> ProgressSnapshot:
    return ProgressSnapshot(
        nodes={
            "briefing": briefing,
            "medicalBay": medical,
            "armory": armory,
            "captainsQuarters": quarters,
            "finalArea": final,
        },
        active_area=active,
    )


def test_consistent_snapshot_is_unchanged() -> None:
    snap = _snap(C, U, X, L, L, active="medicalBay")
    assert reconcile(STARSHIP_ESCAPE, snap) == snap


def test_unjustified_completion_is_cleared(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        repaired = reconcile(STARSHIP_ESCAPE, _snap(C, L, L, L, L))
    assert repaired.nodes["briefing"] is U
    assert "unjustified completion" in caplog.text


def test_missing_completion_is_added() -> None:
    repaired = reconcile(STARSHIP_ESCAPE, _snap(U, U, X, L, L))
    assert repaired.nodes["briefing"] is C


def test_missing_branch_lockout_is_added() -> None:
    repaired = reconcile(STARSHIP_ESCAPE, _snap(C, L, U, L, L))
    assert repaired.nodes["medicalBay"] is X


def test_both_exclusive_members_entered_keeps_first() -> None:
    repaired = reconcile(STARSHIP_ESCAPE, _snap(C, U, U, L, L))
    assert repaired.nodes["medicalBay"] is U
    assert repaired.nodes["armory"] is X


def test_unjustified_lockout_is_reverted() -> None:
    repaired = reconcile(STARSHIP_ESCAPE, _snap(U, X, L, L, L))
    assert repaired.nodes["medicalBay"] is L


def test_locked_root_is_unlocked() -> None:
    repaired = reconcile(STARSHIP_ESCAPE, _snap(L, L, L, L, L))
    assert repaired.nodes["briefing"] is U


def test_unknown_and_missing_nodes() -> None:
    snap = ProgressSnapshot(nodes={"briefing": U, "engineRoom": U})
    repaired = reconcile(STARSHIP_ESCAPE, snap)
    assert "engineRoom" not in repaired.nodes
    assert list(repaired.nodes) == STARSHIP_ESCAPE.order
    assert repaired.nodes["finalArea"] is L


def test_active_area_dropped_when_not_enterable() -> None:
    repaired = reconcile(STARSHIP_ESCAPE, _snap(C, U, X, L, L, active="briefing"))
    assert repaired.active_area is None


def test_branch_locked_node_is_never_completed() -> None:
    repaired = reconcile(STARSHIP_ESCAPE, _snap(C, U, X, U, L))
    assert repaired.nodes["armory"] is X
    assert repaired.nodes["medicalBay"] is C
    assert repaired.nodes["captainsQuarters"] is U


def test_unreachable_node_is_locked(caplog) -> None:
    with caplog.at_level(logging.WARNING):
        repaired = reconcile(STARSHIP_ESCAPE, _snap(U, L, L, U, L))
    assert repaired.nodes["captainsQuarters"] is L
    assert repaired.nodes["briefing"] is U
    assert "unreachable" in caplog.text


def test_unreachable_chain_is_locked() -> None:
    repaired = reconcile(STARSHIP_ESCAPE, _snap(C, L, L, C, U, active="finalArea"))
    assert repaired.nodes["captainsQuarters"] is L
    assert repaired.nodes["finalArea"] is L
    assert repaired.nodes["briefing"] is U
    assert repaired.active_area is None
