# src/nav_core/acquisition.py
"""
Path acquisition: request rounds and the acceptance policy.

A round fans a bounded set of candidate goals out to the oracle, staggered
across ticks. Results come back in arbitrary order; each one is judged
against the current path the moment it is drained, and the first result
that passes the policy wins. Accepting a path cancels the round's scope
so the remaining requests are abandoned.

The winner therefore depends on oracle latency, not on candidate order.
That race is intended: whichever acceptable path arrives first is used.
"""

from __future__ import annotations

import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, List, Optional

from contracts.types import CancelToken, Path, Point2D, Rect
from profiles.schema import AcquisitionSettings, OracleSettings

from .candidates import CandidateGenerator, CandidateRequest
from .geometry import distance
from .oracle.client import OracleClient, OracleResultMessage
from .state import NavigationState

log = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Acceptance policy
# ---------------------------------------------------------------------------


@dataclass
class AcceptanceDecision:
    accepted: bool
    reason: str
    candidate_score: Optional[float] = None
    current_score: Optional[float] = None


def directional_score(path: Path, spawn: Optional[Point2D]) -> float:
    """
    Score in [0, 1] rewarding paths that lead away from spawn.

    0.5 baseline, plus net outward movement (end vs. start distance from
    spawn) / 200, plus up to 0.2 for path length / 500. Without a spawn
    reference every path scores 0.5.
    """
    if spawn is None:
        return 0.5
    outward = distance(spawn, path.end.as_point()) - distance(spawn, path.start.as_point())
    score = 0.5 + outward / 200.0 + min(path.length / 500.0, 0.2)
    return min(1.0, max(0.0, score))


class AcceptancePolicy:
    """Pure decision function; never mutates anything."""

    def __init__(self, cfg: AcquisitionSettings) -> None:
        self.cfg = cfg

    def evaluate(
        self,
        candidate: Path,
        current: Optional[Path],
        now: float,
        spawn: Optional[Point2D] = None,
    ) -> AcceptanceDecision:
        if current is None:
            return AcceptanceDecision(True, "no current path")

        age = current.age(now)
        if age > self.cfg.staleness_s:
            return AcceptanceDecision(True, "stale replacement")
        if age < self.cfg.stability_grace_s:
            return AcceptanceDecision(False, "within stability grace window")

        cand_score = directional_score(candidate, spawn)
        cur_score = directional_score(current, spawn)
        margin = self.cfg.score_margin

        if cand_score > cur_score + margin:
            return AcceptanceDecision(True, "better direction", cand_score, cur_score)
        if (
            abs(cand_score - cur_score) <= margin
            and candidate.length < self.cfg.shorter_path_ratio * current.length
        ):
            return AcceptanceDecision(True, "similar direction, much shorter", cand_score, cur_score)
        return AcceptanceDecision(False, "no improvement", cand_score, cur_score)


# ---------------------------------------------------------------------------
# Rounds
# ---------------------------------------------------------------------------


@dataclass
class AcquisitionRound:
    round_id: int
    started_at: float
    scope: CancelToken
    pending: Deque[CandidateRequest] = field(default_factory=deque)
    in_flight: Dict[int, CandidateRequest] = field(default_factory=dict)
    next_dispatch_at: float = 0.0
    dispatched: int = 0
    resolved: int = 0

    @property
    def exhausted(self) -> bool:
        return not self.pending and not self.in_flight


class PathAcquisitionManager:
    """Owns the active round; called only from the tick loop."""

    def __init__(
        self,
        client: OracleClient,
        generator: CandidateGenerator,
        policy: AcceptancePolicy,
        oracle_cfg: OracleSettings,
    ) -> None:
        self._client = client
        self._generator = generator
        self._policy = policy
        self._cfg = oracle_cfg
        self._round_ids = itertools.count(1)
        self._request_ids = itertools.count(1)
        self.round: Optional[AcquisitionRound] = None
        self.last_round_started_at: Optional[float] = None
        self.rounds_started = 0
        self.rounds_timed_out = 0

    # ------------------------------------------------------------------
    # Round lifecycle
    # ------------------------------------------------------------------

    def can_start_round(self, now: float) -> bool:
        if self.round is not None:
            return False
        if self.last_round_started_at is None:
            return True
        return now - self.last_round_started_at >= self._cfg.min_request_interval_s

    def start_round(
        self,
        now: float,
        position: Point2D,
        spawn: Optional[Point2D] = None,
        zone_bounds: Optional[Rect] = None,
    ) -> AcquisitionRound:
        self.cancel()
        goals = self._generator.generate(
            position, spawn=spawn, zone_bounds=zone_bounds, limit=self._cfg.max_fanout
        )
        rnd = AcquisitionRound(
            round_id=next(self._round_ids),
            started_at=now,
            scope=CancelToken(),
            next_dispatch_at=now,
        )
        for goal in goals:
            rnd.pending.append(
                CandidateRequest(
                    request_id=next(self._request_ids),
                    round_id=rnd.round_id,
                    target=goal.target,
                    rationale=goal.rationale,
                    cancel_token=rnd.scope.child(),
                )
            )
        self.round = rnd
        self.last_round_started_at = now
        self.rounds_started += 1
        log.info("Acquisition round %d started with %d candidates", rnd.round_id, len(rnd.pending))
        return rnd

    def dispatch_due(self, now: float) -> List[CandidateRequest]:
        """Send the requests whose stagger slot has come up."""
        rnd = self.round
        if rnd is None:
            return []
        sent: List[CandidateRequest] = []
        while rnd.pending and now >= rnd.next_dispatch_at and not rnd.scope.cancelled:
            req = rnd.pending.popleft()
            rnd.in_flight[req.request_id] = req
            rnd.dispatched += 1
            log.debug("Requesting path to %s (%s)", req.target, req.rationale)
            sent.append(req)
            if not self._client.request(req):
                log.info("Oracle transport lost; holding %d undispatched requests", len(rnd.pending))
                break
            if self._cfg.dispatch_stagger_s > 0:
                rnd.next_dispatch_at = now + self._cfg.dispatch_stagger_s
        return sent

    def check_timeout(self, now: float) -> bool:
        """Abandon the round once the request timeout has elapsed."""
        rnd = self.round
        if rnd is None or now - rnd.started_at < self._cfg.request_timeout_s:
            return False
        log.warning(
            "Acquisition round %d timed out after %.1fs (%d/%d answered)",
            rnd.round_id,
            now - rnd.started_at,
            rnd.resolved,
            rnd.dispatched,
        )
        self.cancel()
        self.rounds_timed_out += 1
        # Let the caller retry right away instead of waiting out the interval.
        self.last_round_started_at = None
        return True

    def cancel(self) -> None:
        if self.round is None:
            return
        self.round.scope.cancel()
        self.round.pending.clear()
        self.round.in_flight.clear()
        self.round = None

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def apply_result(
        self,
        msg: OracleResultMessage,
        state: NavigationState,
        now: float,
    ) -> AcceptanceDecision:
        rnd = self.round
        if rnd is not None and msg.round_id == rnd.round_id:
            if rnd.in_flight.pop(msg.request_id, None) is not None:
                rnd.resolved += 1

        if not msg.found:
            decision = AcceptanceDecision(False, msg.error or "no path found")
        else:
            candidate = Path(waypoints=msg.waypoints)
            decision = self.apply_candidate(candidate, state, now)

        if not decision.accepted and self.round is not None and self.round.exhausted:
            log.info("Acquisition round %d exhausted without an accepted path", self.round.round_id)
            self.round = None
        return decision

    def apply_candidate(
        self,
        candidate: Path,
        state: NavigationState,
        now: float,
    ) -> AcceptanceDecision:
        """Judge one candidate and install it if accepted."""
        decision = self._policy.evaluate(
            candidate, state.current_path, now, state.initial_spawn_position
        )
        if decision.accepted:
            state.replace_path(candidate, now)
            self.cancel()
        return decision
