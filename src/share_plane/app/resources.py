"""Resource resolver: polymorphic dispatch over the fixed resource-type set.

Each resource type is a closed ``ResourceType`` variant described by a
``ResourceKind``. The resolver maps a variant to the ``ResourceStore`` that
owns its records and, for blob-backed variants (file, photo, resume), to the
``BlobStore`` holding its content.

Callers pass the set of types their operation supports: sharing accepts all
five, collaboration only file/folder/album. Anything else is a
``ValidationError`` before any store is touched.

The resolver is read-only. Resource records are owned by their stores.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Iterable, Mapping

from .errors import ConfigurationError, NotFoundError, ValidationError

if TYPE_CHECKING:
    from .protocols import BlobStore, ResourceStore


class ResourceType(str, Enum):
    FILE = 'file'
    FOLDER = 'folder'
    PHOTO = 'photo'
    ALBUM = 'album'
    RESUME = 'resume'


@dataclass(frozen=True, slots=True)
class ResourceKind:
    """Static description of one resource-type variant."""

    resource_type: ResourceType
    label: str
    blob_backed: bool


RESOURCE_KINDS: Mapping[ResourceType, ResourceKind] = {
    ResourceType.FILE: ResourceKind(ResourceType.FILE, 'File', blob_backed=True),
    ResourceType.FOLDER: ResourceKind(ResourceType.FOLDER, 'Folder', blob_backed=False),
    ResourceType.PHOTO: ResourceKind(ResourceType.PHOTO, 'Photo', blob_backed=True),
    ResourceType.ALBUM: ResourceKind(ResourceType.ALBUM, 'Album', blob_backed=False),
    ResourceType.RESUME: ResourceKind(ResourceType.RESUME, 'Resume', blob_backed=True),
}

BLOB_BACKED_TYPES: frozenset[ResourceType] = frozenset(
    kind.resource_type for kind in RESOURCE_KINDS.values() if kind.blob_backed
)

SHAREABLE_TYPES: frozenset[ResourceType] = frozenset(ResourceType)

COLLABORATIVE_TYPES: frozenset[ResourceType] = frozenset({
    ResourceType.FILE,
    ResourceType.FOLDER,
    ResourceType.ALBUM,
})


@dataclass(frozen=True, slots=True)
class Resource:
    """A record fetched from a resource store.

    Attributes:
        id: Resource identifier within its store.
        owner_user_id: User who owns the resource.
        blob_key: Object key in the blob store (blob-backed types only).
        name: Display/file name, used for download dispositions.
        attributes: The raw record as returned by the store.
    """

    id: str
    owner_user_id: str
    blob_key: str | None = None
    name: str | None = None
    attributes: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return dict(self.attributes) if self.attributes else {
            'id': self.id,
            'user_id': self.owner_user_id,
        }


@dataclass(frozen=True, slots=True)
class ResolvedResource:
    """A resource-type variant bound to its backing stores."""

    kind: ResourceKind
    store: ResourceStore
    blob_store: BlobStore | None = None

    async def fetch_by_id(self, resource_id: str) -> Resource:
        resource = await self.store.get_by_id(resource_id)
        if resource is None:
            raise NotFoundError(
                f'{self.kind.label} not found.',
                code=f'{self.kind.resource_type.value}_not_found',
            )
        return resource


def parse_resource_type(
    value: str | ResourceType,
    allowed: Iterable[ResourceType] = SHAREABLE_TYPES,
) -> ResourceType:
    """Coerce a type tag into a ResourceType that the caller supports.

    Raises:
        ValidationError: Unknown tag or tag outside ``allowed``.
    """
    allowed_set = frozenset(allowed)
    try:
        rtype = ResourceType(value)
    except ValueError:
        rtype = None
    if rtype is None or rtype not in allowed_set:
        names = ', '.join(sorted(t.value for t in allowed_set))
        raise ValidationError(
            f'Invalid resource type. Must be one of: {names}',
            code='unsupported_resource_type',
        )
    return rtype


class ResourceResolver:
    """Dispatch a resource-type tag to its store and blob store."""

    def __init__(
        self,
        stores: Mapping[ResourceType, ResourceStore],
        blob_stores: Mapping[ResourceType, BlobStore] | None = None,
    ) -> None:
        self._stores = dict(stores)
        self._blob_stores = dict(blob_stores or {})

    def resolve(
        self,
        resource_type: str | ResourceType,
        allowed: Iterable[ResourceType] = SHAREABLE_TYPES,
    ) -> ResolvedResource:
        rtype = parse_resource_type(resource_type, allowed)
        kind = RESOURCE_KINDS[rtype]

        store = self._stores.get(rtype)
        if store is None:
            raise ConfigurationError(f'No resource store wired for {rtype.value!r}')

        blob_store = None
        if kind.blob_backed:
            blob_store = self._blob_stores.get(rtype)
            if blob_store is None:
                raise ConfigurationError(f'No blob store wired for {rtype.value!r}')

        return ResolvedResource(kind=kind, store=store, blob_store=blob_store)

    async def fetch(
        self,
        resource_type: str | ResourceType,
        resource_id: str,
        allowed: Iterable[ResourceType] = SHAREABLE_TYPES,
    ) -> tuple[ResolvedResource, Resource]:
        resolved = self.resolve(resource_type, allowed)
        return resolved, await resolved.fetch_by_id(resource_id)
