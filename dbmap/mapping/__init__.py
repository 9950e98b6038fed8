"""Record mapping: descriptors, dynamic rows, record shapes and table persistence."""

from dbmap.mapping._compose import compose_select, has_limit_clause
from dbmap.mapping._descriptor import DescriptorRegistry, FieldDescriptor, MappingDescriptor, build_descriptor
from dbmap.mapping._persistence import CommandSet, Mapping
from dbmap.mapping._row import Row
from dbmap.mapping._shape import DynamicShape, RecordShape, TypedShape, shape_for

__all__ = (
    "CommandSet",
    "DescriptorRegistry",
    "DynamicShape",
    "FieldDescriptor",
    "Mapping",
    "MappingDescriptor",
    "RecordShape",
    "Row",
    "TypedShape",
    "build_descriptor",
    "compose_select",
    "has_limit_clause",
    "shape_for",
)
