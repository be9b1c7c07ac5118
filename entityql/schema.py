"""Schema model: entities, attributes and materialized relationships.

Attributes are a tagged variant: ``data_type`` is the discriminant and a
loaded compound attribute carries exactly one relationship payload
(``lookup`` for Lookup, ``junction`` for Junction).
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional, Sequence, Tuple, TypeVar

import inflection

__all__ = [
    'DataType',
    'DisplayType',
    'Attribute',
    'LoadedAttribute',
    'Junction',
    'Entity',
    'LoadedEntity',
    'find_attribute',
    'junction_table_name',
    'full_path_name',
]


class DataType(str, Enum):
    STRING = 'String'
    TEXT = 'Text'
    INT = 'Int'
    FLOAT = 'Float'
    BOOL = 'Bool'
    DATETIME = 'Datetime'
    DATE = 'Date'
    LOOKUP = 'Lookup'
    JUNCTION = 'Junction'

    @property
    def is_compound(self) -> bool:
        return self in (DataType.LOOKUP, DataType.JUNCTION)


class DisplayType(str, Enum):
    TEXT = 'text'
    TEXTAREA = 'textarea'
    NUMBER = 'number'
    DATETIME = 'datetime'
    DATE = 'date'
    DROPDOWN = 'dropdown'
    LOOKUP = 'lookup'
    JUNCTION = 'junction'
    IMAGE = 'image'


@dataclass(frozen=True)
class Attribute:
    field: str
    header: str = ''
    data_type: DataType = DataType.STRING
    display_type: DisplayType = DisplayType.TEXT
    in_list: bool = True
    in_detail: bool = True
    is_default: bool = False
    options: str = ''
    validation: str = ''
    validation_message: str = ''

    @classmethod
    def from_column(cls, name: str, data_type: DataType = DataType.STRING) -> 'Attribute':
        """Build an attribute for a physical column, titling the header from its name."""
        return cls(field=name, header=inflection.titleize(name), data_type=DataType(data_type))

    @property
    def is_compound(self) -> bool:
        return self.data_type.is_compound

    def target_name(self) -> Optional[str]:
        """Entity name a Lookup/Junction points at, or None when not configured."""
        if not self.is_compound:
            return None
        val = (self.options or '').strip()
        return val or None

    def to_loaded(self, table_name: str) -> 'LoadedAttribute':
        return LoadedAttribute(
            table_name=table_name,
            field=self.field,
            header=self.header,
            data_type=self.data_type,
            display_type=self.display_type,
            in_list=self.in_list,
            in_detail=self.in_detail,
            is_default=self.is_default,
            options=self.options,
            validation=self.validation,
            validation_message=self.validation_message,
        )


@dataclass(frozen=True)
class Junction:
    table_name: str
    source_entity: 'LoadedEntity'
    target_entity: 'LoadedEntity'
    source_column: str
    target_column: str

    @classmethod
    def between(cls, source: 'LoadedEntity', target: 'LoadedEntity', attr: Attribute) -> 'Junction':
        source_key = inflection.underscore(source.name)
        target_key = inflection.underscore(target.name)
        if source_key == target_key:
            source_col, target_col = 'source_id', 'target_id'
        else:
            source_col, target_col = f'{source_key}_id', f'{target_key}_id'
        return cls(
            table_name=junction_table_name(source.name, target.name, attr.field),
            source_entity=source,
            target_entity=target,
            source_column=source_col,
            target_column=target_col,
        )


@dataclass(frozen=True)
class LoadedAttribute(Attribute):
    table_name: str = ''
    lookup: Optional['LoadedEntity'] = None
    junction: Optional[Junction] = None

    def __post_init__(self) -> None:
        if self.lookup is not None and self.junction is not None:
            raise ValueError(f"attribute '{self.field}' cannot carry both lookup and junction")
        if self.lookup is not None and self.data_type is not DataType.LOOKUP:
            raise ValueError(f"attribute '{self.field}' has lookup but data type {self.data_type.value}")
        if self.junction is not None and self.data_type is not DataType.JUNCTION:
            raise ValueError(f"attribute '{self.field}' has junction but data type {self.data_type.value}")

    @property
    def is_loaded(self) -> bool:
        """True once a compound attribute has its relationship materialized."""
        if self.data_type is DataType.LOOKUP:
            return self.lookup is not None
        if self.data_type is DataType.JUNCTION:
            return self.junction is not None
        return True

    @property
    def target_entity(self) -> Optional['LoadedEntity']:
        if self.lookup is not None:
            return self.lookup
        if self.junction is not None:
            return self.junction.target_entity
        return None

    def with_lookup(self, target: 'LoadedEntity') -> 'LoadedAttribute':
        return replace(self, lookup=target)

    def with_junction(self, junction: Junction) -> 'LoadedAttribute':
        return replace(self, junction=junction)


A = TypeVar('A', bound=Attribute)


def find_attribute(attributes: Iterable[A], name: str) -> Optional[A]:
    for attr in attributes or ():
        if attr.field == name:
            return attr
    return None


def junction_table_name(source_name: str, target_name: str, attr_field: str) -> str:
    """Deterministic join-table name; also the key used for cycle detection."""
    parts = (source_name, target_name, attr_field)
    return '_'.join(inflection.underscore(p) for p in parts)


def full_path_name(prefix: str, field_name: str) -> str:
    return f"{prefix}.{field_name}" if prefix else field_name


@dataclass(frozen=True)
class Entity:
    name: str
    table_name: str = ''
    title_attribute: str = ''
    primary_key: str = 'id'
    default_page_size: int = 0
    attributes: Tuple[Attribute, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not self.table_name:
            object.__setattr__(self, 'table_name', inflection.underscore(self.name))
        object.__setattr__(self, 'attributes', tuple(self.attributes))

    def find(self, name: str) -> Optional[Attribute]:
        return find_attribute(self.attributes, name)

    def validate(self) -> Optional[str]:
        """Return a message describing the first broken invariant, or None."""
        seen = set()
        for attr in self.attributes:
            if attr.field in seen:
                return f"attribute `{attr.field}` is declared twice in {self.name}"
            seen.add(attr.field)
        if self.title_attribute and self.find(self.title_attribute) is None:
            return f"`{self.title_attribute}` was not in attributes list"
        if self.find(self.primary_key) is None:
            return f"primary key `{self.primary_key}` was not in attributes list"
        return None

    def with_default_attributes(self) -> 'Entity':
        """Ensure the primary key column is declared."""
        if self.find(self.primary_key) is not None:
            return self
        pk = Attribute.from_column(self.primary_key, DataType.INT)
        return replace(self, attributes=(pk, *self.attributes))

    def to_loaded(self) -> 'LoadedEntity':
        return LoadedEntity(
            name=self.name,
            table_name=self.table_name,
            title_attribute=self.title_attribute,
            primary_key=self.primary_key,
            default_page_size=self.default_page_size,
            attributes=tuple(a.to_loaded(self.table_name) for a in self.attributes),
        )


@dataclass(frozen=True)
class LoadedEntity:
    name: str
    table_name: str
    title_attribute: str = ''
    primary_key: str = 'id'
    default_page_size: int = 0
    attributes: Tuple[LoadedAttribute, ...] = field(default_factory=tuple)

    def find(self, name: str) -> Optional[LoadedAttribute]:
        return find_attribute(self.attributes, name)

    @property
    def primary_key_attribute(self) -> LoadedAttribute:
        attr = self.find(self.primary_key)
        if attr is None:
            # Entities without a declared key still sort/join on it as an Int column
            return LoadedAttribute(field=self.primary_key, data_type=DataType.INT, table_name=self.table_name)
        return attr

    def local_attributes(self) -> Sequence[LoadedAttribute]:
        """Attributes backed by a column on this entity's own table."""
        return [a for a in self.attributes if a.data_type is not DataType.JUNCTION]

    def with_attributes(self, attributes: Iterable[LoadedAttribute]) -> 'LoadedEntity':
        return replace(self, attributes=tuple(attributes))
