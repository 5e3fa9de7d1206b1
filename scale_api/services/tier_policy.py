#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Tier entitlements

Single source of truth for what each tier unlocks. Every tier change goes
through ``get_tier_config`` so features and prompt quota never drift from the
tier they belong to.
"""

from dataclasses import dataclass

from loguru import logger

from scale_api.models.subscription import Tier
from scale_api.utils.errors import ValidationError

UNLIMITED = -1


@dataclass(frozen=True)
class TierConfig:
    prompts_per_month: int
    features: tuple[str, ...]


_BASIC_FEATURES = ("chat", "agent", "codeCompletion")
_MID_FEATURES = _BASIC_FEATURES + ("dependencyVisualization", "knowledgeBase")
_TOP_FEATURES = _MID_FEATURES + ("fineTuning", "rbac", "auditLogging", "sso")

TIER_POLICY: dict[Tier, TierConfig] = {
    Tier.basic: TierConfig(prompts_per_month=75, features=_BASIC_FEATURES),
    Tier.mid: TierConfig(prompts_per_month=UNLIMITED, features=_MID_FEATURES),
    Tier.top: TierConfig(prompts_per_month=UNLIMITED, features=_TOP_FEATURES),
}

# Billing-provider plan IDs
PLAN_ID_TO_TIER: dict[str, Tier] = {
    "scale-fan": Tier.basic,
    "scale-developer": Tier.mid,
    "scale-enterprise": Tier.top,
}
TIER_TO_PLAN_ID: dict[Tier, str] = {tier: plan_id for plan_id, tier in PLAN_ID_TO_TIER.items()}


def parse_tier(value: str | Tier) -> Tier:
    """Strict tier parsing for request input"""
    if isinstance(value, Tier):
        return value
    try:
        return Tier((value or "").strip().lower())
    except ValueError:
        raise ValidationError(f"Invalid subscription tier: {value}")


def get_tier_config(tier: str | Tier | None) -> TierConfig:
    """Entitlements for a tier; unknown or legacy values get basic"""
    try:
        return TIER_POLICY[parse_tier(tier)]
    except ValidationError:
        logger.warning(f"Unknown tier {tier!r}, falling back to basic")
        return TIER_POLICY[Tier.basic]


def plan_id_to_tier(plan_id: str | None) -> Tier:
    tier = PLAN_ID_TO_TIER.get(plan_id or "")
    if tier is None:
        logger.warning(f"Unknown billing plan ID {plan_id!r}, mapping to basic")
        return Tier.basic
    return tier


def tier_to_plan_id(tier: Tier) -> str:
    return TIER_TO_PLAN_ID[tier]


def validate_tier_policy() -> None:
    """Startup check that the tables cover every tier"""
    missing = [tier.value for tier in Tier if tier not in TIER_POLICY]
    if missing:
        raise RuntimeError(f"Tier policy missing entries for: {', '.join(missing)}")
    unplanned = [tier.value for tier in Tier if tier not in TIER_TO_PLAN_ID]
    if unplanned:
        raise RuntimeError(f"No billing plan ID for tiers: {', '.join(unplanned)}")
    for tier, config in TIER_POLICY.items():
        if config.prompts_per_month < UNLIMITED or config.prompts_per_month == 0:
            raise RuntimeError(f"Invalid prompt quota for tier {tier.value}: {config.prompts_per_month}")
