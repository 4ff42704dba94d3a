"""Storage variants for netstorage."""

from netstorage.connection import ACSConnection
from netstorage.errors import ConfigurationError
from netstorage.metadata import MetadataNormalizer
from netstorage.storage.backend import StorageVariant
from netstorage.storage.filestore import FileStoreVariant
from netstorage.storage.objectstore import ObjectStoreVariant

VARIANTS = {
    FileStoreVariant.name: FileStoreVariant,
    ObjectStoreVariant.name: ObjectStoreVariant,
}


def create_variant(
    name: str, connection: ACSConnection, normalizer: MetadataNormalizer
) -> StorageVariant:
    """Instantiate a storage variant by name.

    Args:
        name: "file-store" or "object-store".
        connection: The signed connection the variant issues requests on.
        normalizer: Record normaliser bound to the client's path mapper.

    Raises:
        ConfigurationError: If the name is unknown.
    """
    try:
        variant_cls = VARIANTS[name]
    except KeyError:
        raise ConfigurationError(
            f"Unknown storage variant: {name!r} (expected one of {', '.join(sorted(VARIANTS))})"
        ) from None
    return variant_cls(connection, normalizer)


__all__ = [
    "create_variant",
    "FileStoreVariant",
    "ObjectStoreVariant",
    "StorageVariant",
    "VARIANTS",
]
