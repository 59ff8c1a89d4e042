from functools import wraps
from typing import Callable, Optional

from marketplace.logger import logger
from marketplace.utils.common_models import ActionResult, Actor
from marketplace.utils.errors import MarketplaceError, NotAuthorized


def engine_operation(tag: str) -> Callable:
    """
    Wraps an engine method so domain errors never escape the engine.

    The wrapped method returns the entity view on success and raises
    MarketplaceError subclasses on rule violations; callers always receive an
    ActionResult. Infrastructure errors are logged and re-raised.
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> ActionResult:
            try:
                return ActionResult.success(func(*args, **kwargs))
            except MarketplaceError as e:
                logger.warning(f"[{tag}] {func.__name__} rejected: {e.kind.value} - {e.message} {e.context}")
                return e.to_result()
            except Exception as e:
                logger.exception(f"[{tag}] {func.__name__} failed unexpectedly: {e}")
                raise
        return wrapper
    return decorator


def is_owner_or_agent(actor: Actor, owner_id: str, agent_id: Optional[str]) -> bool:
    return actor.is_admin or actor.user_id == owner_id or (agent_id is not None and actor.user_id == agent_id)


def require_owner_or_agent(actor: Actor, property_obj, action: str):
    if not is_owner_or_agent(actor, property_obj.owner_id, property_obj.agent_id):
        raise NotAuthorized(
            f"Only the owner or agent of the property may {action}",
            property_id=property_obj.id,
            actor_id=actor.user_id,
        )
