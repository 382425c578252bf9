"""Test registry and test-suite manifest adapter."""

from selector.registry.generator import generate_manifest
from selector.registry.manifest import (
    ManifestError,
    SuiteManifest,
    load_manifest,
    write_manifest,
)
from selector.registry.registry import Priority, TestCase, TestRegistry, simple_name

__all__ = [
    "ManifestError",
    "Priority",
    "SuiteManifest",
    "TestCase",
    "TestRegistry",
    "generate_manifest",
    "load_manifest",
    "simple_name",
    "write_manifest",
]
