"""
Form Binding - controlled field state for one entity (new or existing)

A form owns its field values, checks what can be checked locally, builds the
normalized payload and hands it to the MutationExecutor. Local validation
failures never reach the network.

Field names may be dotted (``marks.obtained``); the payload nests them.
Fields that belong to a cascading selector are routed through it, so picking
an institution clears the class/section/student fields of the same form.
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union

from sgcadmin.api_client import ApiClient
from sgcadmin.cascade import CascadingSelector
from sgcadmin.exceptions import ErrorKind, LocalValidationError, SGCAdminError, banner_text
from sgcadmin.ids import resolve_id
from sgcadmin.logging_config import get_logger
from sgcadmin.mutations import MutationExecutor
from sgcadmin.query import is_empty
from sgcadmin.resources import ResourceDescriptor
from sgcadmin.session import SessionContext


logger = get_logger(__name__)

REQUIRED_MESSAGE = "Please fill in all required fields"
REDIRECT_DELAY = 1.5

Requirement = Union[bool, Callable[["FormBinding"], bool]]


@dataclass(frozen=True)
class FieldSpec:
    """
    One form field.

    kind: text | number | ref | choice | date | bool | secret
    """
    name: str
    label: str
    kind: str = "text"
    required: Requirement = False
    choices: Tuple[str, ...] = ()
    default: Any = ""
    omit_blank: bool = False
    message: Optional[str] = None
    write_only: bool = False


@dataclass
class FormOutcome:
    ok: bool
    message: Optional[str] = None
    error: Optional[ErrorKind] = None
    data: Any = None
    redirect: Optional[str] = None
    redirect_delay: float = 0.0


def _to_number(value: Any) -> Any:
    if isinstance(value, bool) or value is None:
        return value
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            number = float(str(value).strip())
        except ValueError:
            return value
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _dig(data: Any, dotted: str) -> Any:
    value = data
    for part in dotted.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _plant(data: Dict[str, Any], dotted: str, value: Any) -> None:
    parts = dotted.split(".")
    target = data
    for part in parts[:-1]:
        target = target.setdefault(part, {})
    target[parts[-1]] = value


class FormBinding:
    """
    Base class for every entity form.

    Subclasses declare ``descriptor`` and ``fields`` and may override
    ``check()`` (extra validation) and ``normalize()`` (payload tweaks).
    """

    descriptor: ResourceDescriptor
    fields: Tuple[FieldSpec, ...] = ()
    required_message = REQUIRED_MESSAGE
    # Dialog forms stay on the list page instead of navigating back to it
    redirects = True

    def __init__(
        self,
        session: Optional[SessionContext] = None,
        record_id: Optional[str] = None,
        redirect_delay: float = REDIRECT_DELAY,
        api: Optional[ApiClient] = None,
    ):
        self.api = api
        self.session = session
        self.record_id = resolve_id(record_id) or None
        self.redirect_delay = redirect_delay
        self.values: Dict[str, Any] = {spec.name: spec.default for spec in self.fields}
        # (selector, {form field: selector level})
        self.cascades: List[Tuple[CascadingSelector, Dict[str, str]]] = []
        self.submitting = False

    # ==================== Mode ====================

    @property
    def mode(self) -> str:
        return "edit" if self.record_id else "create"

    @property
    def is_edit(self) -> bool:
        return self.record_id is not None

    def spec(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(f"{type(self).__name__} has no field '{name}'")

    # ==================== Cascades ====================

    def bind_cascade(self, selector: CascadingSelector, mapping: Dict[str, str]) -> CascadingSelector:
        self.cascades.append((selector, dict(mapping)))
        self._pull(selector, mapping)
        return selector

    def _cascade_for(self, name: str) -> Optional[Tuple[CascadingSelector, Dict[str, str]]]:
        for selector, mapping in self.cascades:
            if name in mapping:
                return selector, mapping
        return None

    def _pull(self, selector: CascadingSelector, mapping: Dict[str, str]) -> None:
        for field_name, level in mapping.items():
            if level in selector.values:
                self.values[field_name] = selector.values[level]

    def _push(self, selector: CascadingSelector, mapping: Dict[str, str]) -> None:
        for field_name, level in mapping.items():
            if level not in selector.locked:
                selector.values[level] = resolve_id(self.values.get(field_name))

    # ==================== Field state ====================

    def get(self, name: str) -> Any:
        return self.values.get(name, "")

    def set(self, name: str, value: Any) -> List[str]:
        """
        Set one field. Cascade fields clear their dependants immediately;
        call ``sync()`` (or use ``choose()``) to load the new option lists.

        Returns the names of fields that were cleared.
        """
        bound = self._cascade_for(name)
        if bound is None:
            self.values[name] = value
            return []
        selector, mapping = bound
        cleared_levels = selector.assign(mapping[name], value)
        self._pull(selector, mapping)
        return [field for field, level in mapping.items() if level in cleared_levels]

    def set_many(self, values: Dict[str, Any]) -> None:
        for name, value in values.items():
            self.set(name, value)

    async def choose(self, name: str, value: Any) -> List[str]:
        cleared = self.set(name, value)
        await self.sync()
        return cleared

    async def sync(self) -> None:
        """Reload cascade option lists for the current selections"""
        for selector, mapping in self.cascades:
            self._push(selector, mapping)
            # Locked levels win over whatever was loaded into the form
            self._pull(selector, mapping)
            await selector.sync()

    def is_required(self, spec: FieldSpec) -> bool:
        if callable(spec.required):
            return bool(spec.required(self))
        return bool(spec.required)

    # ==================== Edit mode ====================

    def load(self, record: Any) -> None:
        """Populate from an API record (dict or model); references become ids"""
        if hasattr(record, "model_dump"):
            record = record.model_dump(by_alias=True)
        if not isinstance(record, dict):
            raise TypeError("Form records must be mappings")
        self.record_id = resolve_id(record.get("_id", record.get("id"))) or self.record_id
        for spec in self.fields:
            if spec.write_only:
                continue
            value = _dig(record, spec.name)
            if value is None:
                continue
            if spec.kind == "ref":
                value = resolve_id(value)
            elif spec.kind == "date" and isinstance(value, str):
                value = value[:10]
            self.values[spec.name] = value
        self.after_load(record)

    def after_load(self, record: Dict[str, Any]) -> None:
        """Hook for fields that need more than a plain copy"""

    async def load_existing(self, api: ApiClient) -> None:
        """
        GET the record being edited, populate and load dependent options.

        Raises:
            SGCAdminError with the banner text as message
        """
        if not self.record_id:
            raise ValueError("No record to load")
        try:
            response = await api.get(self.descriptor.item_path(self.record_id))
        except SGCAdminError as e:
            raise type(e)(banner_text(e, f"Failed to fetch {self.descriptor.singular}"),
                          status=e.status, details=e.details) from e
        self.load(response.data or {})
        await self.sync()

    # ==================== Validation & payload ====================

    def validate(self) -> None:
        """Raises LocalValidationError on the first problem found"""
        for spec in self.fields:
            if self.is_required(spec) and is_empty(self.get(spec.name)):
                raise LocalValidationError(spec.message or self.required_message, field=spec.name)
            if spec.choices and not is_empty(self.get(spec.name)) and self.get(spec.name) not in spec.choices:
                raise LocalValidationError(
                    f"{spec.label} must be one of: {', '.join(spec.choices)}", field=spec.name
                )
        self.check()

    def check(self) -> None:
        """Form-specific rules beyond required fields"""

    def _convert(self, spec: FieldSpec, value: Any) -> Any:
        if spec.kind == "number":
            return _to_number(value)
        if spec.kind == "ref":
            return resolve_id(value)
        if spec.kind == "bool":
            return _to_bool(value)
        if isinstance(value, str) and spec.kind != "secret":
            return value.strip()
        return value

    def payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {}
        for spec in self.fields:
            value = self.get(spec.name)
            if is_empty(value):
                if spec.omit_blank:
                    continue
                value = None if spec.kind in ("number", "date") else ""
                if value is None:
                    continue
            _plant(body, spec.name, self._convert(spec, value))
        return self.normalize(body)

    def normalize(self, body: Dict[str, Any]) -> Dict[str, Any]:
        return body

    # ==================== Submit ====================

    @property
    def success_message(self) -> str:
        action = "updated" if self.is_edit else "created"
        return f"{self.descriptor.singular.capitalize()} {action} successfully!"

    @property
    def failure_message(self) -> str:
        return f"Failed to save {self.descriptor.singular}"

    @property
    def redirect_route(self) -> Optional[str]:
        return self.descriptor.list_route if self.redirects else None

    async def submit(self, executor: MutationExecutor) -> FormOutcome:
        try:
            self.validate()
        except LocalValidationError as e:
            logger.info(f"{type(self).__name__} rejected locally: {e.message}")
            return FormOutcome(ok=False, message=e.message, error=e.kind)

        body = self.payload()
        self.submitting = True
        try:
            if self.is_edit:
                result = await executor.update(self.descriptor, self.record_id, body)
            else:
                result = await executor.create(self.descriptor, body)
        finally:
            self.submitting = False

        if not result.ok:
            return FormOutcome(ok=False, message=result.banner(self.failure_message), error=result.error)
        return FormOutcome(
            ok=True,
            message=self.success_message,
            data=result.data,
            redirect=self.redirect_route,
            redirect_delay=self.redirect_delay if self.redirects else 0.0,
        )


def institution_options_loader(api: ApiClient) -> Callable[[Dict[str, str]], Any]:
    """Loader for the top-level institution list"""

    async def load(_: Dict[str, str]) -> list:
        response = await api.get("institutions")
        return response.items

    return load


def scoped_loader(api: ApiClient, endpoint: str, params: Sequence[Tuple[str, str]],
                  extra: Optional[Dict[str, Any]] = None) -> Callable[[Dict[str, str]], Any]:
    """
    Loader for ``endpoint`` filtered by upstream selections.

    ``params`` pairs (query parameter, selector level).
    """

    async def load(upstream: Dict[str, str]) -> list:
        query = dict(extra or {})
        for param, level in params:
            query[param] = upstream[level]
        response = await api.get(endpoint, params=query)
        return response.items

    return load
