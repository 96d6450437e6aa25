"""Public package interface for uploadprep."""

from .api import preprocess_bytes, preprocess_file, preprocess_file_sync
from .config import PipelineConfig, TargetFormat
from .context import ProcessingContext
from .errors import DecodeError, EncodeError, ImagePrepError
from .image import DecodedImage, EncodedImage, Image, to_decoded, to_encoded
from .pipeline import ImagePipeline

__all__ = [
    "preprocess_bytes",
    "preprocess_file",
    "preprocess_file_sync",
    "PipelineConfig",
    "TargetFormat",
    "ProcessingContext",
    "DecodeError",
    "EncodeError",
    "ImagePrepError",
    "DecodedImage",
    "EncodedImage",
    "Image",
    "to_decoded",
    "to_encoded",
    "ImagePipeline",
]
