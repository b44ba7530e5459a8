"""
Session Context - the authenticated identity shared by every page

The session lives in a small key/value store holding three string entries:

    token                 bearer credential
    user                  serialized identity (id, name, role, institution)
    selectedInstitution   institution chosen at login

``selectedInstitution`` is written either as a raw id (super admin picked one)
or as the JSON of ``user.institution`` (which is itself an object or a bare id).
All of that parsing stays in this module; pages only ask
``current_institution_id()``.
"""

import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

from sgcadmin.ids import resolve_id
from sgcadmin.logging_config import get_logger, set_institution_id, set_user_id


logger = get_logger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"
SELECTED_INSTITUTION_KEY = "selectedInstitution"
SESSION_KEYS = (TOKEN_KEY, USER_KEY, SELECTED_INSTITUTION_KEY)

# Sentinel for "leave selectedInstitution unset"
UNSET = object()


class SessionStorage(ABC):
    """String key/value storage, same contract as browser localStorage"""

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Stored value or None"""
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        pass


class MemoryStorage(SessionStorage):
    """In-process storage (tests, one-off scripts)"""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)


class FileStorage(SessionStorage):
    """
    JSON file storage, e.g. ~/.sgcadmin/storage.json

    The file is rewritten on every change and restricted to the owner.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._data: Dict[str, str] = {}
        self._load()

    def _load(self) -> None:
        if not self.path.exists():
            return
        try:
            with open(self.path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Ignoring unreadable session storage {self.path}: {e}")
            return
        if isinstance(data, dict):
            self._data = {k: v for k, v in data.items() if isinstance(v, str)}

    def _save(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(self._data, f, indent=2)
        try:
            os.chmod(self.path, 0o600)
        except OSError:
            pass

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = value
        self._save()

    def remove_item(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._save()


class SessionContext:
    """
    Read access to the persisted session plus role-based visibility decisions.

    Writes happen only through ``store_login`` (login flow, institution switch)
    and ``clear`` (logout, forced re-authentication).
    """

    def __init__(self, storage: SessionStorage):
        self.storage = storage
        self._bind_log_context()

    # ==================== Reads ====================

    @property
    def token(self) -> Optional[str]:
        return self.storage.get_item(TOKEN_KEY) or None

    @property
    def user(self) -> Dict[str, Any]:
        raw = self.storage.get_item(USER_KEY)
        if not raw:
            return {}
        try:
            user = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored user is not valid JSON; treating session as anonymous")
            return {}
        return user if isinstance(user, dict) else {}

    @property
    def role(self) -> Optional[str]:
        return self.user.get("role")

    @property
    def user_id(self) -> str:
        user = self.user
        return resolve_id(user.get("_id", user.get("id")))

    def is_authenticated(self) -> bool:
        """Missing token means anonymous; never raises"""
        return bool(self.token)

    def is_super_admin(self) -> bool:
        return self.role == "super_admin"

    def selected_institution_id(self) -> Optional[str]:
        """Id stored under selectedInstitution, whatever shape it was saved in"""
        raw = self.storage.get_item(SELECTED_INSTITUTION_KEY)
        if not raw:
            return None
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            return raw
        return resolve_id(parsed) or None

    def current_institution_id(self) -> Optional[str]:
        """selectedInstitution first, then the user's own institution"""
        selected = self.selected_institution_id()
        if selected:
            return selected
        return resolve_id(self.user.get("institution")) or None

    def institution_filter(self) -> Tuple[Optional[str], bool]:
        """
        (institution id, locked) for institution selectors.

        Non-super-admins are pinned to their own institution; super admins
        start from their selection and may change it.
        """
        institution_id = self.current_institution_id()
        return institution_id, not self.is_super_admin()

    # ==================== Writes ====================

    def store_login(self, token: str, user: Dict[str, Any],
                    selected_institution: Any = UNSET) -> None:
        """
        Persist a successful login.

        ``selected_institution`` is stored verbatim when it is a string (raw id)
        and JSON encoded otherwise; UNSET leaves the key absent.
        """
        self.storage.set_item(TOKEN_KEY, token)
        self.storage.set_item(USER_KEY, json.dumps(user))
        if selected_institution is UNSET:
            self.storage.remove_item(SELECTED_INSTITUTION_KEY)
        elif isinstance(selected_institution, str):
            self.storage.set_item(SELECTED_INSTITUTION_KEY, selected_institution)
        else:
            self.storage.set_item(SELECTED_INSTITUTION_KEY, json.dumps(selected_institution))
        self._bind_log_context()

    def select_institution(self, institution: Any) -> None:
        """Super-admin institution switch; a raw id or the institution object"""
        value = institution if isinstance(institution, str) else json.dumps(institution)
        self.storage.set_item(SELECTED_INSTITUTION_KEY, value)
        self._bind_log_context()

    def clear(self) -> None:
        """Logout: drop all three keys"""
        for key in SESSION_KEYS:
            self.storage.remove_item(key)
        self._bind_log_context()

    def _bind_log_context(self) -> None:
        set_user_id(self.user_id)
        set_institution_id(self.current_institution_id() or "")
