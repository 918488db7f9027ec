from __future__ import annotations

import logging
from typing import Any

from dikernel.exceptions import DIKernelInvalidArgumentError
from dikernel.lock_mode import LockMode
from dikernel.planning.builder import PlanBuilder, ReflectionPlanBuilder
from dikernel.planning.plan import Plan

logger = logging.getLogger(__name__)


class Planner:
    """Cache one plan per implementation type.

    Plans are built at most once: concurrent first requests for the same type
    wait on the planner lock and all of them observe the same plan object.
    Published plans are read without locking.
    """

    def __init__(
        self,
        builder: PlanBuilder | None = None,
        *,
        lock_mode: LockMode = LockMode.THREAD,
    ) -> None:
        self._builder = builder or ReflectionPlanBuilder()
        self._plans: dict[Any, Plan] = {}
        self._lock = lock_mode.create_lock()

    def get_plan(self, implementation: Any) -> Plan:
        """Return the plan of ``implementation``, building it on first use.

        Args:
            implementation: Class or closed generic alias.

        """
        plan = self._plans.get(implementation)
        if plan is not None:
            return plan
        with self._lock:
            plan = self._plans.get(implementation)
            if plan is None:
                plan = self._builder.build(implementation)
                self._plans[implementation] = plan
            return plan

    def add(self, plan: Plan) -> None:
        """Register a pre-built plan.

        Raises:
            DIKernelInvalidArgumentError: If a plan for the same type exists.

        """
        with self._lock:
            if plan.type in self._plans:
                msg = f"A plan for {plan.type!r} is already registered."
                raise DIKernelInvalidArgumentError(msg)
            self._plans[plan.type] = plan
        logger.debug("Registered plan for %r", plan.type)

    def has(self, implementation: Any) -> bool:
        """Return whether a plan for ``implementation`` has been published."""
        return implementation in self._plans


__all__ = ["Planner"]
