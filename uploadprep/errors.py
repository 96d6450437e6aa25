"""Exceptions raised while converting images."""


class ImagePrepError(Exception):
    """Base class for all preprocessing failures."""


class DecodeError(ImagePrepError):
    """Encoded bytes could not be turned into a pixel buffer."""


class EncodeError(ImagePrepError):
    """The codec cannot produce the requested format/quality combination."""
