"""
Availability decision engine.

Turns the observed Galera membership state, the read_only flag and the
node's cluster position, together with operator policy and override, into a
Verdict. No I/O happens here: callers fetch the readings first, so every
rule can be exercised synchronously.

Rule order is fixed (first match wins):

1. FORCE_UP override      -> available
2. FORCE_FAIL override    -> 503
3. membership state       -> Joining/Joined/unknown are 503, Donor follows policy
4. read_only (Synced)     -> 503 unless policy allows read-only nodes
5. require_master         -> available only at wsrep_local_index == 0
6. otherwise              -> available

Membership state is checked before read_only: it is the cluster-wide signal,
read_only is local and may lag behind it.

The "index 0 is master" rule is a convention, not consensus. During
membership churn two nodes can briefly both report index 0.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional, Union

from clustercheck.core.overrides import Override

HTTP_OK = 200
HTTP_UNAVAILABLE = 503


class MembershipState(Enum):
    """wsrep_local_state values."""

    UNKNOWN = 0
    JOINING = 1
    DONOR = 2
    JOINED = 3
    SYNCED = 4

    @classmethod
    def parse(cls, raw: Union["MembershipState", int, str, None]) -> "MembershipState":
        """
        Map a raw wsrep_local_state reading onto the enum.

        Accepts the integer code, its string form, or a state comment such as
        "Synced" or "Donor/Desynced". Anything else is UNKNOWN.
        """
        if isinstance(raw, cls):
            return raw
        if raw is None or isinstance(raw, bool):
            return cls.UNKNOWN
        text = str(raw).strip()
        try:
            code = int(text)
        except ValueError:
            name = text.split("/", 1)[0].upper()
            if name in cls.__members__ and name != "UNKNOWN":
                return cls[name]
            return cls.UNKNOWN
        if code == cls.UNKNOWN.value:
            return cls.UNKNOWN
        try:
            return cls(code)
        except ValueError:
            return cls.UNKNOWN


@dataclass(frozen=True)
class Policy:
    """Operator policy, fixed at startup."""

    available_when_donor: bool = False
    available_when_read_only: bool = False
    require_master: bool = False

    def for_route(self, require_master: Optional[bool] = None) -> "Policy":
        """Per-request copy; None keeps the global require_master default."""
        if require_master is None or require_master == self.require_master:
            return self
        return replace(self, require_master=require_master)


@dataclass(frozen=True)
class Verdict:
    available: bool
    http_status: int
    reason: str
    # Which state-machine leaf produced this verdict (metrics/log label)
    state: str


def _up(reason: str, state: str) -> Verdict:
    return Verdict(True, HTTP_OK, reason, state)


def _down(reason: str, state: str) -> Verdict:
    return Verdict(False, HTTP_UNAVAILABLE, reason, state)


def evaluate(
    state: Union[MembershipState, int, str, None],
    read_only: Optional[bool],
    position: Optional[int],
    policy: Policy,
    override: Override = Override.NONE,
) -> Verdict:
    """
    Decide whether this node should receive traffic.

    Args:
        state: wsrep_local_state as read (enum, code or raw string)
        read_only: True when read_only=ON; None if it was not read
        position: wsrep_local_index; only consulted when policy.require_master
        policy: availability policy for this request
        override: operator override in effect

    Returns:
        Verdict; never raises for any combination of inputs
    """
    if override is Override.FORCE_UP:
        return _up("forced available by operator override", "overridden-up")
    if override is Override.FORCE_FAIL:
        return _down("forced unavailable by operator override", "overridden-down")

    member = MembershipState.parse(state)

    if member is MembershipState.JOINING:
        return _down(
            "node is joining the cluster and has not yet received a state snapshot",
            "joining",
        )
    if member is MembershipState.DONOR:
        if policy.available_when_donor:
            return _up("node is in Donor state and donors are allowed to serve traffic", "donor")
        return _down("node is in Donor state", "donor")
    if member is MembershipState.JOINED:
        return _down("node has joined but is not yet synchronized with the cluster", "joined")
    if member is not MembershipState.SYNCED:
        raw = state.value if isinstance(state, MembershipState) else state
        return _down(f"node is in an unknown state ({raw})", "unknown")

    if read_only is None:
        return _down("node is synchronized but its read_only flag was not observed", "synced-read-only")
    if read_only and not policy.available_when_read_only:
        return _down("node is read-only", "synced-read-only")

    if policy.require_master:
        if position is None:
            return _down(
                "node is synchronized but its cluster position was not observed",
                "synced-not-elected",
            )
        if position != 0:
            return _down(
                f"node is synchronized but not master (wsrep_local_index={position})",
                "synced-not-elected",
            )
        return _up("node is synchronized and is master (wsrep_local_index=0)", "synced-writable")

    return _up("node is synchronized and accepting traffic", "synced-writable")


class QueryFailure(Exception):
    """
    A status query could not be answered.

    Distinct from any Verdict: the database was not asked, or did not answer,
    so the transport reports 500 instead of 503.
    """

    def __init__(self, query: str, message: str):
        super().__init__(f"{query} query failed: {message}")
        self.query = query
        self.message = message
