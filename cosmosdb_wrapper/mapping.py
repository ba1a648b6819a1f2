"""
Container Mapping

Entities declare how they are stored through an inner ``Meta`` class::

    class TestDocument(CosmosDocumentMixin, BaseModel):
        ...

        class Meta(ContainerMeta):
            container_name = "TestDocuments"
            partition_key = ["partition_key", "query_field"]

From that declaration and the pydantic field aliases, ``build_entity_mapping``
derives everything the document context needs: the container name, the
ordered hierarchical partition key (as model fields and as ``/wire`` paths),
the wire name of every property, and the owned collections with their own
renames. Mappings are validated once, when the registry is built, so a bad
declaration fails at configuration time instead of on the first request.
"""

import logging
import typing
from typing import Any, Dict, Iterable, List, Optional, Tuple, Type

from pydantic import BaseModel

from .exceptions import MappingError

logger = logging.getLogger(__name__)

# Cosmos DB hierarchical partition keys support at most three levels
MAX_PARTITION_KEY_DEPTH = 3


class ContainerMeta:
    """Base class for container mapping declarations."""
    container_name: str
    partition_key: List[str] = []
    etag_field: Optional[str] = None
    # When True, replaces send the last-read _etag with If-Match
    concurrency_token: bool = False


class OwnedCollection:
    """A list of owned sub-records serialized inline in the parent document."""

    def __init__(self, property_name: str, wire_name: str, item_model: Type[BaseModel]):
        self.property_name = property_name
        self.wire_name = wire_name
        self.item_model = item_model
        self.wire_names = _wire_names(item_model)


class EntityMapping:
    """Resolved, validated mapping for one entity type."""

    def __init__(
        self,
        model_class: Type[BaseModel],
        container_name: str,
        partition_key_fields: Tuple[str, ...],
        wire_names: Dict[str, str],
        owned_collections: Tuple[OwnedCollection, ...] = (),
        etag_field: Optional[str] = None,
        concurrency_token: bool = False,
    ):
        self.model_class = model_class
        self.container_name = container_name
        self.partition_key_fields = partition_key_fields
        self.wire_names = wire_names
        self.owned_collections = owned_collections
        self.etag_field = etag_field
        self.concurrency_token = concurrency_token

    @property
    def model_name(self) -> str:
        return self.model_class.__name__

    @property
    def partition_key_paths(self) -> List[str]:
        """Partition key paths in container-definition form, e.g. ``['/pk', '/queryfield']``."""
        return [f"/{self.wire_names[name]}" for name in self.partition_key_fields]

    @property
    def is_hierarchical(self) -> bool:
        return len(self.partition_key_fields) > 1

    def wire_name(self, property_name: str) -> str:
        """Wire name of a model property."""
        try:
            return self.wire_names[property_name]
        except KeyError:
            raise MappingError(
                f"{self.model_name} has no property '{property_name}'", self.model_name
            ) from None

    def partition_key_value(self, document: BaseModel) -> List[Any]:
        """Partition key values of a document, in declaration order."""
        return [getattr(document, name) for name in self.partition_key_fields]

    def sdk_partition_key(self, values: List[Any]) -> Any:
        """Partition key argument for SDK calls: a list for hierarchical keys, a scalar otherwise."""
        return list(values) if self.is_hierarchical else values[0]

    def document_key(self, document: BaseModel) -> Tuple[Any, ...]:
        """Identity of a document inside its container: id plus partition key values."""
        return (document.id, *self.partition_key_value(document))

    def is_full_partition_key(self, properties: Iterable[str]) -> bool:
        """Whether the given properties fix every level of the partition key."""
        return set(self.partition_key_fields).issubset(properties)

    def __repr__(self) -> str:
        return (
            f"EntityMapping(model={self.model_name}, container={self.container_name!r}, "
            f"partition_key={self.partition_key_paths})"
        )


def _wire_names(model_class: Type[BaseModel]) -> Dict[str, str]:
    return {
        name: field.alias or name
        for name, field in model_class.model_fields.items()
    }


def _owned_item_model(annotation) -> Optional[Type[BaseModel]]:
    """Return the item model of a ``List[Model]`` annotation, else None."""
    if typing.get_origin(annotation) not in (list, List):
        return None
    args = typing.get_args(annotation)
    if args and isinstance(args[0], type) and issubclass(args[0], BaseModel):
        return args[0]
    return None


def build_entity_mapping(model_class: Type[BaseModel]) -> EntityMapping:
    """Build and validate the mapping declared by ``model_class.Meta``.

    Raises:
        MappingError: If the declaration is missing or inconsistent with the model
    """
    model_name = model_class.__name__
    meta = getattr(model_class, 'Meta', None)
    if meta is None:
        raise MappingError(f"{model_name} does not declare a Meta container mapping", model_name)

    container_name = getattr(meta, 'container_name', None)
    if not container_name:
        raise MappingError(f"{model_name}.Meta must declare container_name", model_name)

    partition_key = list(getattr(meta, 'partition_key', None) or [])
    if not partition_key:
        raise MappingError(f"{model_name}.Meta must declare a partition_key", model_name)
    if len(partition_key) > MAX_PARTITION_KEY_DEPTH:
        raise MappingError(
            f"{model_name} partition key has {len(partition_key)} levels; "
            f"at most {MAX_PARTITION_KEY_DEPTH} are supported",
            model_name
        )
    if len(set(partition_key)) != len(partition_key):
        raise MappingError(f"{model_name} partition key repeats a property: {partition_key}", model_name)

    fields = model_class.model_fields
    if 'id' not in fields:
        raise MappingError(f"{model_name} must have an 'id' field", model_name)

    missing = [name for name in partition_key if name not in fields]
    if missing:
        raise MappingError(
            f"Partition key property {', '.join(missing)} is not a property of {model_name}",
            model_name
        )

    etag_field = getattr(meta, 'etag_field', None)
    if etag_field and etag_field not in fields:
        raise MappingError(f"etag_field '{etag_field}' is not a property of {model_name}", model_name)

    concurrency_token = bool(getattr(meta, 'concurrency_token', False))
    if concurrency_token and not etag_field:
        raise MappingError(f"{model_name} enables concurrency_token without an etag_field", model_name)

    wire_names = _wire_names(model_class)
    if wire_names['id'] != 'id':
        raise MappingError(f"{model_name}.id must be stored as 'id', not '{wire_names['id']}'", model_name)

    owned = []
    for name, field in fields.items():
        item_model = _owned_item_model(field.annotation)
        if item_model is not None:
            owned.append(OwnedCollection(name, wire_names[name], item_model))

    mapping = EntityMapping(
        model_class=model_class,
        container_name=container_name,
        partition_key_fields=tuple(partition_key),
        wire_names=wire_names,
        owned_collections=tuple(owned),
        etag_field=etag_field,
        concurrency_token=concurrency_token,
    )
    logger.debug(f"Built mapping {mapping}")
    return mapping


class MappingRegistry:
    """Mappings for every entity a document context knows about."""

    def __init__(self, model_classes: Iterable[Type[BaseModel]]):
        self._mappings: Dict[Type[BaseModel], EntityMapping] = {}
        containers: Dict[str, str] = {}
        for model_class in model_classes:
            mapping = build_entity_mapping(model_class)
            owner = containers.get(mapping.container_name)
            if owner is not None:
                raise MappingError(
                    f"Container '{mapping.container_name}' is mapped by both {owner} and {mapping.model_name}",
                    mapping.model_name
                )
            containers[mapping.container_name] = mapping.model_name
            self._mappings[model_class] = mapping

    def get(self, model_class: Type[BaseModel]) -> EntityMapping:
        try:
            return self._mappings[model_class]
        except KeyError:
            raise MappingError(
                f"{model_class.__name__} is not registered with this context", model_class.__name__
            ) from None

    def for_document(self, document: BaseModel) -> EntityMapping:
        return self.get(type(document))

    def __iter__(self):
        return iter(self._mappings.values())

    def __len__(self) -> int:
        return len(self._mappings)

    def __contains__(self, model_class) -> bool:
        return model_class in self._mappings
