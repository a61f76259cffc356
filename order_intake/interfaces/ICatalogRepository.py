from abc import ABC, abstractmethod
from typing import List, Optional

from order_intake.domain.models import MenuItem, MenuItemAddon, MenuItemVariant, Restaurant

class ICatalogRepository(ABC):
    @abstractmethod
    def get_restaurant(self, restaurant_id: str) -> Optional[Restaurant]:
        pass

    @abstractmethod
    def get_menu_items(self, restaurant_id: str, item_ids: List[str]) -> List[MenuItem]:
        pass

    @abstractmethod
    def get_active_variants(self, restaurant_id: str, item_ids: List[str]) -> List[MenuItemVariant]:
        pass

    @abstractmethod
    def get_active_addons(self, restaurant_id: str, item_ids: List[str]) -> List[MenuItemAddon]:
        pass
