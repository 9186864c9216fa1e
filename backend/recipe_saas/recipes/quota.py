"""
Recipe generation quota.

  Free:     5 generations, lifetime counter on the user record
  Premium:  unlimited

The store applies `allow` atomically together with the counter increment
(see `Store.consume_generation`), so the check here is never acted on alone.
"""

from typing import Union

from recipe_saas.auth.schemas import Tier

FREE_RECIPE_LIMIT = 5
UNLIMITED = "unlimited"

QUOTA_MESSAGE = (
    f"Free tier limit reached ({FREE_RECIPE_LIMIT} recipes/month). "
    "Upgrade to premium for unlimited recipes."
)


def _is_free(tier: Union[Tier, str]) -> bool:
    return getattr(tier, "value", tier) == Tier.free.value


def allow(tier: Union[Tier, str], usage_count: int) -> bool:
    """Return True if a user on `tier` with `usage_count` generations may generate another."""
    if _is_free(tier) and usage_count >= FREE_RECIPE_LIMIT:
        return False
    return True


def usage_limit(tier: Union[Tier, str]) -> Union[int, str]:
    return FREE_RECIPE_LIMIT if _is_free(tier) else UNLIMITED


def remaining(tier: Union[Tier, str], usage_count: int) -> Union[int, str]:
    limit = usage_limit(tier)
    if limit == UNLIMITED:
        return UNLIMITED
    return max(0, limit - usage_count)


def usage_summary(tier: Union[Tier, str], usage_count: int) -> dict:
    return {"generatedThisMonth": usage_count, "limit": usage_limit(tier)}
