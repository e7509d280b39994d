"""Builder for custom resource definition objects."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field


class CRDBuildError(ValueError):
    """Raised when a custom resource definition cannot be built."""

    def __init__(self, errors):
        self.errors = list(errors)
        super().__init__("[" + " ".join(self.errors) + "]")


class ResourceScope(str, enum.Enum):
    """Scope in which a custom resource lives."""

    NAMESPACED = "Namespaced"
    CLUSTER = "Cluster"


@dataclass
class PrinterColumn:
    """An additional column shown when listing the resource."""

    name: str
    type: str
    json_path: str
    priority: int = 0


@dataclass
class CustomResourceDefinition:
    """A custom resource definition as assembled by :class:`CRDBuilder`."""

    name: str = ""
    group: str = ""
    version: str = ""
    kind: str = ""
    list_kind: str = ""
    plural: str = ""
    short_names: list[str] = field(default_factory=list)
    scope: ResourceScope | None = None
    additional_printer_columns: list[PrinterColumn] = field(default_factory=list)


class CRDBuilder:
    """Fluent builder that collects validation errors until :meth:`build`."""

    def __init__(self):
        self._crd = CustomResourceDefinition()
        self._errors: list[str] = []

    def _require(self, value, message):
        if not value:
            self._errors.append(message)
            return False
        return True

    def with_name(self, name):
        if self._require(name, "failed to build CRD. missing CRD name"):
            self._crd.name = name
        return self

    def with_group(self, group):
        if self._require(group, "failed to build CRD. missing CRD group"):
            self._crd.group = group
        return self

    def with_version(self, version):
        if self._require(version, "failed to build CRD. missing CRD version"):
            self._crd.version = version
        return self

    def with_kind(self, kind):
        if self._require(kind, "failed to build CRD. missing CRD kind"):
            self._crd.kind = kind
        return self

    def with_list_kind(self, list_kind):
        if self._require(list_kind, "failed to build CRD. missing CRD list kind"):
            self._crd.list_kind = list_kind
        return self

    def with_plural(self, plural):
        if self._require(plural, "failed to build CRD. missing CRD plural name"):
            self._crd.plural = plural
        return self

    def with_short_names(self, short_names):
        if self._require(short_names, "failed to build CRD. missing CRD shortnames"):
            self._crd.short_names = list(short_names)
        return self

    def with_scope(self, scope):
        self._crd.scope = ResourceScope(scope)
        return self

    def _column_valid(self, column_name, column_type, json_path):
        return (
            self._require(column_name, "missing column name in additional printer columns")
            and self._require(column_type, "missing column type in additional printer columns")
            and self._require(json_path, "missing json path in additional printer columns")
        )

    def with_printer_columns(self, column_name, column_type, json_path):
        if self._column_valid(column_name, column_type, json_path):
            self._crd.additional_printer_columns.append(
                PrinterColumn(column_name, column_type, json_path)
            )
        return self

    def with_priority_printer_columns(self, column_name, column_type, json_path, priority):
        if self._column_valid(column_name, column_type, json_path):
            self._crd.additional_printer_columns.append(
                PrinterColumn(column_name, column_type, json_path, priority)
            )
        return self

    def build(self):
        """Return the definition, or raise :class:`CRDBuildError` listing all errors."""
        if self._errors:
            raise CRDBuildError(self._errors)
        return self._crd