import argparse
import sys
import xml.etree.ElementTree as ET
from collections.abc import Callable
from pathlib import Path

import pytest

import wrapgen

GENERATOR_DIR = Path(__file__).resolve().parent.parent
if str(GENERATOR_DIR) not in sys.path:
    sys.path.insert(0, str(GENERATOR_DIR))

SAMPLE_TYPES_XML = Path(__file__).resolve().parent / "fixtures" / "types_sample.xml"


@pytest.fixture
def sample_types_xml() -> Path:
    return SAMPLE_TYPES_XML


@pytest.fixture
def sample_registry(sample_types_xml: Path) -> wrapgen.TypeRegistry:
    return wrapgen.load_type_registry(sample_types_xml)


@pytest.fixture
def existing_paths(tmp_path: Path) -> dict[str, Path]:
    types_xml = tmp_path / "types.xml"
    types_xml.write_text("<types />\n", encoding="utf-8")

    output_dir = tmp_path / "out"
    return {
        "types_xml": types_xml,
        "output_dir": output_dir,
    }


@pytest.fixture
def missing_path(tmp_path: Path) -> Path:
    return tmp_path / "missing"


@pytest.fixture
def make_args(existing_paths: dict[str, Path]) -> Callable[..., argparse.Namespace]:
    def _make_args(**overrides: object) -> argparse.Namespace:
        base_args: dict[str, object] = {
            "types": existing_paths["types_xml"],
            "class_mappings": [["java.util.Map:com.example.WrappedMap"]],
            "output_dir": existing_paths["output_dir"],
            "stdout": False,
            "no_create_dirs": False,
        }
        base_args.update(overrides)
        return argparse.Namespace(**base_args)

    return _make_args


@pytest.fixture
def make_types_root() -> Callable[[str], ET.Element]:
    def _make_types_root(inner_xml: str) -> ET.Element:
        return ET.fromstring(f"<types>{inner_xml}</types>")

    return _make_types_root


@pytest.fixture
def make_method() -> Callable[..., wrapgen.MethodDescriptor]:
    def _make_method(
        name: str,
        *,
        return_type: wrapgen.TypeRef = wrapgen.VOID,
        parameters: tuple[tuple[wrapgen.TypeRef, str], ...] = (),
        type_variables: tuple[wrapgen.TypeVariable, ...] = (),
        thrown_types: tuple[wrapgen.TypeRef, ...] = (),
        is_final: bool = False,
        is_static: bool = False,
        is_deprecated: bool = False,
    ) -> wrapgen.MethodDescriptor:
        return wrapgen.MethodDescriptor(
            name=name,
            return_type=return_type,
            parameters=tuple(wrapgen.Parameter(t, n) for t, n in parameters),
            type_variables=type_variables,
            thrown_types=thrown_types,
            is_final=is_final,
            is_static=is_static,
            is_deprecated=is_deprecated,
        )

    return _make_method
