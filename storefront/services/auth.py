"""Mocked authentication over the ``registeredUsers``/``currentUser`` slots.

There is no authority behind this: passwords are kept in clear in the
registered-user list (demo accounts only), every session carries the same
fake token, and the signed-in user is whoever last logged in against this
storage.
"""

import logging
import time
from typing import Iterable, List, Optional

from fastapi import HTTPException
from pydantic import ValidationError

from ..core.state import StateHolder
from ..core.storage import CURRENT_USER_KEY, REGISTERED_USERS_KEY, KeyValueStorage, read_json, write_json
from ..core.validation import validate_email
from ..models import User, UserRole


logger = logging.getLogger(__name__)

FAKE_TOKEN = "fake-jwt-token"

DEMO_CREDENTIALS = {
    "user@demo.com": {"password": "password123", "role": UserRole.USER, "id": 2},
    "admin@demo.com": {"password": "admin123", "role": UserRole.ADMIN, "id": 1},
}


class AuthService:
    def __init__(self, storage: KeyValueStorage):
        self.storage = storage
        self.current_user: StateHolder[Optional[User]] = StateHolder(self._load_session())

    def _load_session(self) -> Optional[User]:
        stored = read_json(self.storage, CURRENT_USER_KEY)
        if not stored:
            return None
        try:
            return User.model_validate(stored)
        except ValidationError as e:
            logger.error(f"Discarding unreadable session: {e}")
            return None

    @property
    def current_user_value(self) -> Optional[User]:
        return self.current_user.value

    def _get_registered_users(self) -> List[User]:
        saved = read_json(self.storage, REGISTERED_USERS_KEY, [])
        if not isinstance(saved, list):
            logger.warning(f"Ignoring registered users blob of type {type(saved).__name__}")
            return []
        users = []
        for raw in saved:
            try:
                users.append(User.model_validate(raw))
            except ValidationError as e:
                logger.warning(f"Skipping unreadable registered user: {e}")
        return users

    def _save_registered_users(self, users: List[User]) -> None:
        write_json(self.storage, REGISTERED_USERS_KEY, [u.to_storage() for u in users])

    def _save_user_to_storage(self, user: User) -> None:
        users = self._get_registered_users()
        for index, existing in enumerate(users):
            if existing.email == user.email:
                users[index] = user
                break
        else:
            users.append(user)
        self._save_registered_users(users)

    def _start_session(self, user: User) -> User:
        session_user = user.without_password()
        write_json(self.storage, CURRENT_USER_KEY, session_user.to_storage())
        self.current_user.next(session_user)
        return session_user

    def _new_user_id(self, users: Iterable[User]) -> int:
        taken = {u.id for u in users}
        candidate = int(time.time() * 1000)
        while candidate in taken:
            candidate += 1
        return candidate

    def signup(
        self,
        email: str,
        password: str,
        username: str,
        *,
        firstname: Optional[str] = None,
        lastname: Optional[str] = None,
        phone: Optional[str] = None,
        role: UserRole = UserRole.USER,
    ) -> User:
        validate_email(email)
        existing_users = self._get_registered_users()
        if any(u.email == email for u in existing_users):
            logger.info(f"Signup rejected, {email} already registered")
            raise HTTPException(status_code=409, detail="User already exists with this email")

        new_user = User(
            id=self._new_user_id(existing_users),
            email=email,
            username=username,
            firstname=firstname,
            lastname=lastname,
            phone=phone,
            role=role or UserRole.USER,
            token=FAKE_TOKEN,
            password=password,
        )
        self._save_user_to_storage(new_user)
        logger.info(f"Signup successful for {email} (id={new_user.id}, role={new_user.role.value})")
        return self._start_session(new_user)

    def login(self, email: str, password: str, login_type: UserRole = UserRole.USER) -> User:
        registered = next(
            (u for u in self._get_registered_users() if u.email == email and u.password == password),
            None,
        )

        user_to_login: Optional[User] = None
        if registered:
            if login_type == UserRole.ADMIN and registered.role != UserRole.ADMIN:
                raise HTTPException(status_code=403, detail="Admin access required")
            user_to_login = registered
        else:
            demo = DEMO_CREDENTIALS.get(email)
            if demo and demo["password"] == password:
                if login_type == UserRole.ADMIN and demo["role"] != UserRole.ADMIN:
                    raise HTTPException(status_code=403, detail="Admin access required")
                user_to_login = User(
                    id=demo["id"],
                    email=email,
                    username=email.split("@")[0],
                    role=demo["role"],
                    token=FAKE_TOKEN,
                )

        if not user_to_login:
            logger.info(f"Login failed for {email}: invalid credentials")
            raise HTTPException(status_code=401, detail="Invalid credentials")

        logger.info(f"Login successful for {email}")
        return self._start_session(user_to_login)

    def logout(self) -> None:
        self.storage.remove_item(CURRENT_USER_KEY)
        self.current_user.next(None)

    def update_user_profile(self, updated_user: User) -> User:
        users = self._get_registered_users()
        for index, existing in enumerate(users):
            if existing.id == updated_user.id:
                changes = updated_user.model_dump(exclude_none=True)
                users[index] = existing.model_copy(update=changes)
                self._save_registered_users(users)
                break
        logger.info(f"Profile updated for user {updated_user.id}")
        return self._start_session(updated_user)

    def is_admin(self) -> bool:
        user = self.current_user_value
        return bool(user and user.role == UserRole.ADMIN)

    def require_user(self, roles: Optional[Iterable[UserRole]] = None) -> User:
        user = self.current_user_value
        if not user:
            raise HTTPException(status_code=401, detail="Login required")
        if roles is not None and user.role not in set(roles):
            raise HTTPException(status_code=403, detail="Insufficient role")
        return user
