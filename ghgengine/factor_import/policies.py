# -*- coding: utf-8 -*-
"""
Duplicate Policies

Strategy objects that decide what happens when an imported factor
duplicates an existing one:

- SkipPolicy: keep the existing record, report the row as duplicate
- ReplacePolicy: overwrite a custom record, or add a custom copy of a
  system record
- KeepBothPolicy: persist the incoming factor under a dated name
- CallbackPolicy: delegate to a caller function (e.g. an interactive
  prompt), sync or async

``resolve_policy(None)`` gives SkipPolicy: nothing is overwritten unless
the caller asks for it.
"""

import inspect
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Optional, Union

from ghgengine.factor_import.models import (
    DuplicateAction,
    DuplicateMatch,
    EmissionFactorData,
)

PolicyCallback = Callable[
    [DuplicateMatch, EmissionFactorData],
    Union[DuplicateAction, str, Awaitable[Union[DuplicateAction, str]]],
]


class DuplicatePolicy(ABC):
    """Decides the action for one detected duplicate."""

    @abstractmethod
    async def decide(
        self,
        match: DuplicateMatch,
        candidate: EmissionFactorData,
    ) -> DuplicateAction:
        """Return the action to apply to ``candidate``."""


class SkipPolicy(DuplicatePolicy):
    async def decide(self, match, candidate) -> DuplicateAction:
        return DuplicateAction.SKIP


class ReplacePolicy(DuplicatePolicy):
    async def decide(self, match, candidate) -> DuplicateAction:
        return DuplicateAction.REPLACE


class KeepBothPolicy(DuplicatePolicy):
    async def decide(self, match, candidate) -> DuplicateAction:
        return DuplicateAction.KEEP_BOTH


class CallbackPolicy(DuplicatePolicy):
    """Adapter for a plain function returning an action or its string value."""

    def __init__(self, callback: PolicyCallback):
        self._callback = callback

    async def decide(self, match, candidate) -> DuplicateAction:
        decision = self._callback(match, candidate)
        if inspect.isawaitable(decision):
            decision = await decision
        return DuplicateAction(decision)


_NAMED_POLICIES = {
    DuplicateAction.SKIP.value: SkipPolicy,
    DuplicateAction.REPLACE.value: ReplacePolicy,
    DuplicateAction.KEEP_BOTH.value: KeepBothPolicy,
}


def resolve_policy(policy: Optional[Any]) -> DuplicatePolicy:
    """Turn None, a policy, an action name or a callable into a policy.

    Raises:
        ValueError: Unknown policy name.
        TypeError: Unsupported policy object.
    """
    if policy is None:
        return SkipPolicy()
    if isinstance(policy, DuplicatePolicy):
        return policy
    if isinstance(policy, (DuplicateAction, str)):
        key = DuplicateAction(policy).value
        return _NAMED_POLICIES[key]()
    if callable(policy):
        return CallbackPolicy(policy)
    raise TypeError(f"Unsupported duplicate policy: {policy!r}")


__all__ = [
    "PolicyCallback",
    "DuplicatePolicy",
    "SkipPolicy",
    "ReplacePolicy",
    "KeepBothPolicy",
    "CallbackPolicy",
    "resolve_policy",
]
