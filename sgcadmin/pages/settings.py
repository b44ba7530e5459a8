"""
System settings, grouped by category.

Edits are kept locally until ``save()`` sends every setting in one request;
``update()`` writes a single key straight away.
"""

import json
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from sgcadmin.api_client import ApiClient
from sgcadmin.banners import BannerState
from sgcadmin.config import AdminConfig
from sgcadmin.exceptions import ErrorKind, LocalValidationError, SGCAdminError, banner_text
from sgcadmin.logging_config import get_logger
from sgcadmin.models import Setting
from sgcadmin.mutations import MutationExecutor
from sgcadmin.session import SessionContext


logger = get_logger(__name__)


def coerce_value(setting: Setting, raw: Any) -> Any:
    """Turn user input into the setting's declared type"""
    if not isinstance(raw, str):
        return raw
    text = raw.strip()
    if setting.data_type == "boolean":
        lowered = text.lower()
        if lowered in ("true", "yes", "on", "1"):
            return True
        if lowered in ("false", "no", "off", "0"):
            return False
        raise LocalValidationError(f"{setting.key} expects true or false", field=setting.key)
    if setting.data_type == "number":
        try:
            number = float(text)
        except ValueError:
            raise LocalValidationError(f"{setting.key} expects a number", field=setting.key) from None
        return int(number) if number.is_integer() else number
    if setting.data_type in ("object", "array"):
        try:
            value = json.loads(text)
        except json.JSONDecodeError:
            raise LocalValidationError(f"{setting.key} expects JSON", field=setting.key) from None
        expected = dict if setting.data_type == "object" else list
        if not isinstance(value, expected):
            raise LocalValidationError(f"{setting.key} expects a JSON {setting.data_type}", field=setting.key)
        return value
    return raw


class SettingsPage:
    def __init__(self, api: ApiClient, session: SessionContext, config: Optional[AdminConfig] = None):
        self.api = api
        self.session = session
        self.config = config or AdminConfig()
        self.executor = MutationExecutor(api)
        self.banners = BannerState(self.config.success_banner_seconds)
        self.categories: Dict[str, List[Setting]] = {}
        self.loading = False
        self.unauthorized = False

    async def open(self) -> None:
        await self.load()

    def close(self) -> None:
        pass

    async def load(self) -> Dict[str, List[Setting]]:
        self.loading = True
        try:
            response = await self.api.get("settings/by-category")
        except SGCAdminError as e:
            self.unauthorized = e.kind == ErrorKind.UNAUTHORIZED
            self.banners.error(banner_text(e, "Failed to fetch settings"))
            return self.categories
        finally:
            self.loading = False

        grouped: Dict[str, List[Setting]] = {}
        data = response.data if isinstance(response.data, dict) else {}
        for category, rows in data.items():
            settings = []
            for raw in rows or []:
                try:
                    settings.append(Setting.model_validate(raw))
                except ValidationError as e:
                    logger.warning(f"Skipping malformed setting in {category}: {e}")
            grouped[category] = settings
        self.categories = grouped
        return grouped

    def find(self, key: str) -> Optional[Setting]:
        for settings in self.categories.values():
            for setting in settings:
                if setting.key == key:
                    return setting
        return None

    def change(self, key: str, raw: Any) -> Setting:
        """Local edit; nothing is sent until save()"""
        setting = self.find(key)
        if setting is None:
            raise LocalValidationError(f"Unknown setting '{key}'", field=key)
        if not setting.is_editable:
            raise LocalValidationError(f"{key} is read only", field=key)
        setting.value = coerce_value(setting, raw)
        return setting

    async def update(self, key: str, raw: Any) -> bool:
        """PUT one setting immediately"""
        try:
            setting = self.change(key, raw)
        except LocalValidationError as e:
            self.banners.error(e.message)
            return False
        result = await self.executor.execute("PUT", f"settings/{key}", {"value": setting.value})
        if not result.ok:
            self.unauthorized = result.error == ErrorKind.UNAUTHORIZED
            self.banners.error(result.banner("Failed to update setting"))
            return False
        self.banners.success("Setting updated successfully")
        return True

    async def save(self) -> bool:
        updates = [
            {"key": setting.key, "value": setting.value}
            for settings in self.categories.values()
            for setting in settings
        ]
        result = await self.executor.execute("PUT", "settings", {"settings": updates})
        if not result.ok:
            self.unauthorized = result.error == ErrorKind.UNAUTHORIZED
            self.banners.error(result.banner("Failed to save settings"))
            return False
        self.banners.success("Settings saved successfully")
        return True
