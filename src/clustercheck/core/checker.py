"""
Per-request health check.

Gathers the readings the decision engine needs from a StateSource and hands
them to evaluate(). Only the lookups a verdict can depend on are made: none
under an override, and wsrep_local_index only for Synced nodes on master-only
checks. QueryFailure propagates untouched; there are no retries here.
"""

from typing import Optional

from clustercheck.core.db import StateSource
from clustercheck.core.engine import MembershipState, Policy, Verdict, evaluate
from clustercheck.core.overrides import Override


class ClusterChecker:
    def __init__(self, source: StateSource, policy: Policy):
        self.source = source
        self.policy = policy

    async def check(
        self,
        override: Override = Override.NONE,
        require_master: Optional[bool] = None,
    ) -> Verdict:
        """
        Evaluate this node once.

        Args:
            override: operator override currently in effect
            require_master: True for master-only routes, None for the global default

        Raises:
            QueryFailure: a required status query failed or timed out
        """
        policy = self.policy.for_route(require_master)
        if override is not Override.NONE:
            return evaluate(None, None, None, policy, override)

        state = await self.source.membership_state()
        read_only = await self.source.read_only()
        position = None
        if policy.require_master and MembershipState.parse(state) is MembershipState.SYNCED:
            position = await self.source.local_index()
        return evaluate(state, read_only, position, policy, override)


def policy_from_settings(settings) -> Policy:
    return Policy(
        available_when_donor=settings.AVAILABLE_WHEN_DONOR,
        available_when_read_only=settings.AVAILABLE_WHEN_READONLY,
        require_master=settings.REQUIRE_MASTER,
    )
