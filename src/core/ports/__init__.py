# slate-html-pipeline — Ports (Protocol Interfaces)
# Abstract interfaces for adapters; no implementations here

from src.core.ports.images import (
    AttachedImagesPort,
    AttachedType,
    ImageRecord,
    ImageUploadPort,
    UploadTarget,
)

__all__ = [
    "AttachedImagesPort",
    "AttachedType",
    "ImageRecord",
    "ImageUploadPort",
    "UploadTarget",
]
