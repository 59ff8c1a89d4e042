import re
import uuid
from typing import List, Optional

from marketplace.logger import logger
from marketplace.config.config import settings
from marketplace.database.database_manager import DatabaseManager, get_database_manager
from marketplace.database.repository.property_repository import PropertyRepository
from marketplace.database.repository.user_repository import UserRepository
from marketplace.listing.listing_model import CreatePropertyRequest, PropertyModel, PropertyStatus
from marketplace.utils.common_models import Actor
from marketplace.utils.engine_utils import engine_operation, require_owner_or_agent
from marketplace.utils.errors import NotAuthorized, NotFound

LISTING_ROLES = (Actor.Role.SELLER, Actor.Role.AGENT, Actor.Role.ADMIN)


def slugify(title: str) -> str:
    slug = re.sub(r'[^a-z0-9]+', '-', title.lower()).strip('-')
    return slug or 'listing'


class ListingManager():
    """Property listings; every read goes through the soft-delete policy"""

    def __init__(self, db_manager: Optional[DatabaseManager] = None):
        self.db = db_manager or get_database_manager()

    @engine_operation("LISTING_MANAGER")
    def create_property(self, actor: Actor, request: CreatePropertyRequest) -> PropertyModel:
        if actor.role not in LISTING_ROLES:
            raise NotAuthorized("Only sellers, agents and admins can list properties", actor_id=actor.user_id)

        with self.db.session_scope() as session:
            properties = PropertyRepository(session)
            if request.agent_id:
                agent = UserRepository(session).get_by_id(request.agent_id)
                if not agent or agent.role != Actor.Role.AGENT.value:
                    raise NotFound("Agent not found", agent_id=request.agent_id)

            slug = slugify(request.title)
            if properties.slug_exists(slug):
                slug = f"{slug}-{uuid.uuid4().hex[:8]}"

            property_obj = properties.create(
                title=request.title,
                slug=slug,
                description=request.description,
                property_type=request.property_type.value if request.property_type else None,
                status=request.status.value,
                price=request.price,
                price_type=request.price_type.value,
                bedrooms=request.bedrooms,
                bathrooms=request.bathrooms,
                city=request.city,
                longitude=request.location.longitude if request.location else None,
                latitude=request.location.latitude if request.location else None,
                owner_id=actor.user_id,
                agent_id=request.agent_id,
            )
            result = PropertyModel.model_validate(property_obj)

        logger.info(f"[LISTING_MANAGER] Property {result.id} ('{result.slug}') listed by {actor.user_id}")
        return result

    @engine_operation("LISTING_MANAGER")
    def get_property(self, property_id: str, include_deleted: bool = False) -> PropertyModel:
        with self.db.session_scope() as session:
            property_obj = PropertyRepository(session).get_by_id(property_id, include_deleted=include_deleted)
            if not property_obj:
                raise NotFound("Property not found", property_id=property_id)
            return PropertyModel.model_validate(property_obj)

    def list_properties(
        self,
        status: Optional[PropertyStatus] = None,
        city: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        owner_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[PropertyModel]:
        limit = min(limit or settings.Listing.DEFAULT_PAGE_SIZE, settings.Listing.MAX_PAGE_SIZE)
        with self.db.session_scope() as session:
            rows = PropertyRepository(session).list_listings(
                status=status.value if status else None,
                city=city,
                min_price=min_price,
                max_price=max_price,
                owner_id=owner_id,
                limit=limit,
                offset=offset,
            )
            return [PropertyModel.model_validate(row) for row in rows]

    @engine_operation("LISTING_MANAGER")
    def update_status(self, actor: Actor, property_id: str, status: PropertyStatus) -> PropertyModel:
        with self.db.session_scope() as session:
            properties = PropertyRepository(session)
            property_obj = properties.get_by_id(property_id)
            if not property_obj:
                raise NotFound("Property not found", property_id=property_id)
            require_owner_or_agent(actor, property_obj, "change the listing status")
            properties.update(property_obj, status=status.value)
            result = PropertyModel.model_validate(property_obj)

        logger.info(f"[LISTING_MANAGER] Property {property_id} status set to {status.value} by {actor.user_id}")
        return result

    @engine_operation("LISTING_MANAGER")
    def delete_property(self, actor: Actor, property_id: str) -> PropertyModel:
        """Soft delete; deleting an already deleted listing succeeds without changing it"""
        with self.db.session_scope() as session:
            properties = PropertyRepository(session)
            property_obj = properties.get_by_id(property_id, include_deleted=True)
            if not property_obj:
                raise NotFound("Property not found", property_id=property_id)
            require_owner_or_agent(actor, property_obj, "delete the listing")
            properties.soft_delete(property_id)
            return PropertyModel.model_validate(property_obj)
