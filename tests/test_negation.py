"""Tests for ``can.not_`` / ``cannot`` and ``ask`` checkers."""

import pytest

from clearance import Decision, Registry, RuleFailure, Unauthorized
from clearance.config import ClearanceConfig


@pytest.fixture
def registry() -> Registry:
    registry = Registry(ClearanceConfig())
    registry.register(
        {
            "account": {
                "operations": {
                    "open": lambda subject: subject["role"] == "teller",
                    "close": lambda subject: 1 / 0,
                }
            }
        }
    )
    return registry


@pytest.mark.asyncio
@pytest.mark.parametrize("role", ["teller", "manager"])
async def test_negation_inverts_decision(registry, role):
    checker = registry.check({"role": role})

    plain = await checker.can.open.account.evaluate()
    negated = await checker.can.not_.open.account.evaluate()

    assert plain.decision in (Decision.AUTHORIZED, Decision.DENIED)
    assert negated.authorized is (not plain.authorized)


@pytest.mark.asyncio
async def test_negated_leaf_raises_when_rule_grants(registry):
    checker = registry.check({"role": "teller"})

    with pytest.raises(Unauthorized):
        await checker.can.not_.open.account()
    with pytest.raises(Unauthorized):
        await checker.cannot.open.account()


@pytest.mark.asyncio
async def test_negated_leaf_passes_when_rule_denies(registry):
    checker = registry.check({"role": "manager"})

    assert await checker.cannot.open.account() is None
    assert await checker.can.not_.not_.open.account.evaluate() == await checker.can.open.account.evaluate()


@pytest.mark.asyncio
async def test_faults_are_never_negated(registry):
    checker = registry.check({"role": "teller"})

    with pytest.raises(RuleFailure, match="account/close: rule failed with error: division by zero"):
        await checker.can.close.account()
    with pytest.raises(RuleFailure):
        await checker.cannot.close.account()

    outcome = await checker.cannot.close.account.evaluate()
    assert outcome.decision is Decision.FAULT


@pytest.mark.asyncio
async def test_ask_answers_with_booleans(registry):
    assert await registry.ask({"role": "teller"}).can.open.account() is True
    assert await registry.ask({"role": "manager"}).can.open.account() is False
    assert await registry.ask({"role": "manager"}).cannot.open.account() is True


@pytest.mark.asyncio
async def test_ask_still_raises_faults(registry):
    with pytest.raises(RuleFailure, match="account/close: rule failed with error"):
        await registry.ask({"role": "teller"}).can.close.account()
