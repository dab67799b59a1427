"""Progression graph: the authoritative unlock/lock/completion state machine.

Each node carries one tagged state:

    locked ──► unlocked ──► completed
       │
       └────► branch_locked_out

`completed` and `branch_locked_out` are terminal; only reset() leaves them.
All transitions go through attempt_unlock(); nothing else writes node state
except restore() of an already reconciled snapshot.

Completion is retroactive: an entered node becomes completed the moment one
of its successors is unlocked. A branch-locked node was never entered, so it
is never completed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum

from hero_campaign.definitions import CampaignDefinition
from hero_campaign.models import NodeState, ProgressSnapshot

logger = logging.getLogger(__name__)


class CampaignError(Exception):
    """Base class for campaign rule violations surfaced to callers."""


class UnknownNodeError(CampaignError, KeyError):
    """Raised for a node id that is not part of the campaign."""

    def __str__(self) -> str:
        return f"Unknown campaign area {self.args[0]!r}"


class AreaLockedError(CampaignError):
    """Raised when input targets an area that has not been unlocked."""


class AreaCompletedError(CampaignError):
    """Raised when input targets a completed (frozen) area."""


class UnlockOutcome(str, Enum):
    UNLOCKED = "unlocked"
    ALREADY_UNLOCKED = "already_unlocked"
    BRANCH_LOCKED_OUT = "branch_locked_out"
    NOT_REACHABLE = "not_reachable"


@dataclass
class UnlockResult:
    """What attempt_unlock() did.

    BRANCH_LOCKED_OUT is a permanent outcome: the caller should explain it
    to the player and must not retry.
    """

    node_id: str
    outcome: UnlockOutcome
    message: str = ""
    completed: list[str] = field(default_factory=list)
    branch_locked: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome in (UnlockOutcome.UNLOCKED, UnlockOutcome.ALREADY_UNLOCKED)

    @property
    def permanent(self) -> bool:
        return self.outcome is UnlockOutcome.BRANCH_LOCKED_OUT


class ProgressionGraph:
    def __init__(self, definition: CampaignDefinition) -> None:
        self.definition = definition
        self._states: dict[str, NodeState] = {}
        self.active_area: str | None = None
        self.reset()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def state(self, node_id: str) -> NodeState:
        try:
            return self._states[node_id]
        except KeyError:
            raise UnknownNodeError(node_id) from None

    def states(self) -> dict[str, NodeState]:
        return {node_id: self._states[node_id] for node_id in self.definition.order}

    def is_unlocked(self, node_id: str) -> bool:
        return self.state(node_id).unlocked

    def is_completed(self, node_id: str) -> bool:
        return self.state(node_id).completed

    def is_branch_locked_out(self, node_id: str) -> bool:
        return self.state(node_id).branch_locked_out

    def can_enter(self, node_id: str) -> bool:
        return self.state(node_id) is NodeState.UNLOCKED

    def check_enterable(self, node_id: str) -> None:
        """Raise unless `node_id` is unlocked and not completed."""
        state = self.state(node_id)
        title = self.definition.area(node_id).title
        if state is NodeState.COMPLETED:
            raise AreaCompletedError(f"{title} is completed and can no longer be changed")
        if state is not NodeState.UNLOCKED:
            raise AreaLockedError(f"{title} is locked")

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def attempt_unlock(self, node_id: str) -> UnlockResult:
        state = self.state(node_id)
        title = self.definition.area(node_id).title

        if state.unlocked:
            return UnlockResult(node_id, UnlockOutcome.ALREADY_UNLOCKED)

        chosen = [s for s in self.definition.siblings(node_id) if self._states[s].unlocked]
        if state is NodeState.BRANCH_LOCKED_OUT or chosen:
            chosen_titles = ", ".join(self.definition.area(s).title for s in chosen)
            message = (
                f"{title} is permanently inaccessible: the party chose "
                f"{chosen_titles or 'another path'} instead."
            )
            logger.info("unlock refused node=%s reason=branch_locked_out", node_id)
            return UnlockResult(node_id, UnlockOutcome.BRANCH_LOCKED_OUT, message)

        if not any(self._states[p].unlocked for p in self.definition.predecessors(node_id)):
            logger.info("unlock refused node=%s reason=not_reachable", node_id)
            return UnlockResult(
                node_id, UnlockOutcome.NOT_REACHABLE,
                f"{title} cannot be reached yet.",
            )

        self._states[node_id] = NodeState.UNLOCKED
        branch_locked: list[str] = []
        for sibling in self.definition.siblings(node_id):
            if self._states[sibling] is NodeState.LOCKED:
                self._states[sibling] = NodeState.BRANCH_LOCKED_OUT
                branch_locked.append(sibling)
        completed = self._complete_retroactively()

        logger.info(
            "unlocked node=%s completed=%s branch_locked=%s",
            node_id, completed, branch_locked,
        )
        return UnlockResult(
            node_id, UnlockOutcome.UNLOCKED,
            completed=completed, branch_locked=branch_locked,
        )

    def _complete_retroactively(self) -> list[str]:
        completed: list[str] = []
        for node_id in self.definition.order:
            if self._states[node_id] is not NodeState.UNLOCKED:
                continue
            if any(self._states[s].unlocked for s in self.definition.successors(node_id)):
                self._states[node_id] = NodeState.COMPLETED
                completed.append(node_id)
        return completed

    def mark_active(self, node_id: str) -> None:
        """Select the open conversation area. Completed areas never reopen."""
        self.check_enterable(node_id)
        self.active_area = node_id

    def reset(self) -> None:
        """Restore the initial configuration: only the root is unlocked."""
        root = self.definition.root
        self._states = {
            node_id: NodeState.UNLOCKED if node_id == root else NodeState.LOCKED
            for node_id in self.definition.order
        }
        self.active_area = None

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def snapshot(self) -> ProgressSnapshot:
        return ProgressSnapshot(nodes=self.states(), active_area=self.active_area)

    def restore(self, snapshot: ProgressSnapshot) -> None:
        """Load a snapshot, repairing it first."""
        repaired = reconcile(self.definition, snapshot)
        self._states = dict(repaired.nodes)
        self.active_area = repaired.active_area


def reconcile(definition: CampaignDefinition, snapshot: ProgressSnapshot) -> ProgressSnapshot:
    """Return a consistent copy of `snapshot`.

    Repairs, in order: unknown or missing nodes, a locked root, entered
    nodes with no entered predecessor, exclusive groups with more than one
    entered member, missing or unjustified branch
    lockouts, completion flags that disagree with unlock state, and an
    active area that can no longer be entered. Never raises.
    """
    order = definition.order
    states: dict[str, NodeState] = {}
    for node_id, state in snapshot.nodes.items():
        if node_id not in order:
            logger.warning("reconcile: dropping unknown node %r", node_id)
    for node_id in order:
        states[node_id] = snapshot.nodes.get(node_id, NodeState.LOCKED)

    root = definition.root
    if not states[root].unlocked:
        logger.warning("reconcile: root %r was %s, unlocking", root, states[root].value)
        states[root] = NodeState.UNLOCKED

    # demotions can strand successors, so repeat until stable
    changed = True
    while changed:
        changed = False
        for node_id in order:
            if node_id == root or not states[node_id].unlocked:
                continue
            if not any(states[p].unlocked for p in definition.predecessors(node_id)):
                logger.warning("reconcile: %r is unreachable, locking", node_id)
                states[node_id] = NodeState.LOCKED
                changed = True

    for group in definition.exclusive_groups:
        entered = [n for n in order if n in group and states[n].unlocked]
        for loser in entered[1:]:
            logger.warning(
                "reconcile: %r and %r are exclusive, locking out %r",
                entered[0], loser, loser,
            )
            states[loser] = NodeState.BRANCH_LOCKED_OUT
        for node_id in group:
            if entered and node_id != entered[0] and states[node_id] is NodeState.LOCKED:
                logger.warning("reconcile: %r missing its branch lockout", node_id)
                states[node_id] = NodeState.BRANCH_LOCKED_OUT
            elif not entered and states[node_id] is NodeState.BRANCH_LOCKED_OUT:
                logger.warning("reconcile: unjustified branch lockout on %r", node_id)
                states[node_id] = NodeState.LOCKED

    for node_id in order:
        state = states[node_id]
        if not state.unlocked:
            continue
        justified = any(states[s].unlocked for s in definition.successors(node_id))
        if state is NodeState.COMPLETED and not justified:
            logger.warning("reconcile: clearing unjustified completion on %r", node_id)
            states[node_id] = NodeState.UNLOCKED
        elif state is NodeState.UNLOCKED and justified:
            logger.warning("reconcile: %r should be completed", node_id)
            states[node_id] = NodeState.COMPLETED

    active = snapshot.active_area
    if active is not None and states.get(active) is not NodeState.UNLOCKED:
        logger.warning("reconcile: active area %r is not enterable, dropping", active)
        active = None

    return ProgressSnapshot(version=snapshot.version, nodes=states, active_area=active)
