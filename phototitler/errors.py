from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_404_NOT_FOUND,
    HTTP_500_INTERNAL_SERVER_ERROR,
    HTTP_502_BAD_GATEWAY,
)


class PhotoTitlerError(Exception):
    """Base class for errors surfaced to API callers unmodified."""

    status_code: int = HTTP_500_INTERNAL_SERVER_ERROR


class InvalidInputError(PhotoTitlerError):
    """A caller-supplied argument violates a stated precondition."""

    status_code = HTTP_400_BAD_REQUEST


class ConfigurationMissingError(PhotoTitlerError):
    """The settings singleton is absent when required."""


class AssetNotFoundError(PhotoTitlerError):
    """Referenced photo or document bytes are unavailable."""

    status_code = HTTP_404_NOT_FOUND


class EmptyCollectionError(PhotoTitlerError):
    """Theme assignment was requested on a collection with no photos."""

    status_code = HTTP_400_BAD_REQUEST


class GenerationFailedError(PhotoTitlerError):
    """The model call failed or returned no usable text block."""

    status_code = HTTP_502_BAD_GATEWAY


class MalformedResponseError(PhotoTitlerError):
    """The model's output did not match the expected JSON shape."""

    status_code = HTTP_502_BAD_GATEWAY
