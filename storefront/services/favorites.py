import logging
from typing import List, Optional

from pydantic import ValidationError

from ..core.state import StateHolder
from ..core.storage import GUEST_FAVORITES_KEY, KeyValueStorage, favorites_key, read_json, write_json
from ..models import Product, User
from .auth import AuthService


logger = logging.getLogger(__name__)


def _parse_favorites(raw) -> List[Product]:
    if not isinstance(raw, list):
        return []
    return [Product.model_validate(item) for item in raw]


class FavoritesService:
    """Liked products per user, with a guest list for signed-out browsing."""

    def __init__(self, storage: KeyValueStorage, auth: AuthService):
        self.storage = storage
        self.favorites: StateHolder[List[Product]] = StateHolder([])
        self.current_user_id: Optional[str] = None
        self._loaded = False
        auth.current_user.subscribe(self._on_user_changed)

    def _on_user_changed(self, user: Optional[User]) -> None:
        raw_id = (user.id or user.email) if user else None
        new_user_id = str(raw_id) if raw_id is not None else None
        if new_user_id != self.current_user_id or not self._loaded:
            self.current_user_id = new_user_id
            self._load_favorites_from_storage()

    def _storage_key(self) -> str:
        return favorites_key(self.current_user_id)

    def _load_favorites_from_storage(self) -> None:
        self._loaded = True
        saved = read_json(self.storage, self._storage_key(), [])
        try:
            self.favorites.next(_parse_favorites(saved))
        except ValidationError as e:
            logger.error(f"Error loading favorites from storage: {e}")
            self.favorites.next([])

    def _save_favorites_to_storage(self) -> None:
        write_json(self.storage, self._storage_key(), [p.to_storage() for p in self.favorites.value])

    @property
    def items(self) -> List[Product]:
        return self.favorites.value

    def add_to_favorites(self, product: Product) -> None:
        if not self.current_user_id:
            logger.warning("User not logged in - favorites will be stored as guest")
        if self.is_in_favorites(product.id):
            return
        self.favorites.next([*self.favorites.value, product])
        self._save_favorites_to_storage()

    def remove_from_favorites(self, product_id: int) -> None:
        self.favorites.next([p for p in self.favorites.value if p.id != product_id])
        self._save_favorites_to_storage()

    def toggle_favorite(self, product: Product) -> bool:
        if self.is_in_favorites(product.id):
            self.remove_from_favorites(product.id)
            return False
        self.add_to_favorites(product)
        return True

    def is_in_favorites(self, product_id: int) -> bool:
        return any(p.id == product_id for p in self.favorites.value)

    def get_favorites_count(self) -> int:
        return len(self.favorites.value)

    def clear_favorites(self) -> None:
        self.favorites.next([])
        self.storage.remove_item(self._storage_key())

    def clear_user_data(self) -> None:
        self.current_user_id = None
        self.favorites.next([])

    def migrate_guest_favorites(self) -> int:
        """Merge the guest list into the signed-in user's favorites.

        Returns how many guest favorites were found; the guest slot is removed
        once merged.
        """
        if not self.current_user_id:
            return 0

        raw = read_json(self.storage, GUEST_FAVORITES_KEY)
        if raw is None:
            return 0
        try:
            guest_favorites = _parse_favorites(raw)
        except ValidationError as e:
            logger.error(f"Error migrating guest favorites: {e}")
            return 0

        merged = list(self.favorites.value)
        for favorite in guest_favorites:
            if not any(existing.id == favorite.id for existing in merged):
                merged.append(favorite)

        self.favorites.next(merged)
        self._save_favorites_to_storage()
        self.storage.remove_item(GUEST_FAVORITES_KEY)
        logger.info(f"Migrated {len(guest_favorites)} guest favorites to user {self.current_user_id}")
        return len(guest_favorites)
