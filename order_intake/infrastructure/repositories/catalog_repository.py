import logging
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError

from order_intake.domain.errors import StoreError
from order_intake.domain.models import MenuItem, MenuItemAddon, MenuItemVariant, Restaurant
from order_intake.infrastructure.database import SessionLocal
from order_intake.interfaces.ICatalogRepository import ICatalogRepository

logger = logging.getLogger(__name__)

class PostgresCatalogRepository(ICatalogRepository):

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory

    def get_restaurant(self, restaurant_id: str) -> Optional[Restaurant]:
        session = self.session_factory()
        try:
            return session.get(Restaurant, restaurant_id)
        except SQLAlchemyError as e:
            logger.error(f"❌ Restaurant read failed: {e}")
            raise StoreError("Failed to fetch restaurant") from e
        finally:
            session.close()

    def get_menu_items(self, restaurant_id: str, item_ids: List[str]) -> List[MenuItem]:
        """Returns the items regardless of is_active so callers can tell unknown from unavailable."""
        session = self.session_factory()
        try:
            return (
                session.query(MenuItem)
                .filter(MenuItem.restaurant_id == restaurant_id, MenuItem.id.in_(item_ids))
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"❌ Menu item read failed: {e}")
            raise StoreError("Failed to fetch menu items") from e
        finally:
            session.close()

    def get_active_variants(self, restaurant_id: str, item_ids: List[str]) -> List[MenuItemVariant]:
        session = self.session_factory()
        try:
            return (
                session.query(MenuItemVariant)
                .filter(
                    MenuItemVariant.restaurant_id == restaurant_id,
                    MenuItemVariant.menu_item_id.in_(item_ids),
                    MenuItemVariant.is_active.is_(True),
                )
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"❌ Variant read failed: {e}")
            raise StoreError("Failed to fetch variants") from e
        finally:
            session.close()

    def get_active_addons(self, restaurant_id: str, item_ids: List[str]) -> List[MenuItemAddon]:
        session = self.session_factory()
        try:
            return (
                session.query(MenuItemAddon)
                .filter(
                    MenuItemAddon.restaurant_id == restaurant_id,
                    MenuItemAddon.menu_item_id.in_(item_ids),
                    MenuItemAddon.is_active.is_(True),
                )
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"❌ Add-on read failed: {e}")
            raise StoreError("Failed to fetch addons") from e
        finally:
            session.close()
