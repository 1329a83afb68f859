"""Delegating wrapper generator for Java types.

Reads a type registry (an XML description of classes and interfaces, their
type parameters and public members) and emits, for each requested type, the
source of a wrapper class that holds one instance of the type and forwards
every overridable method to it.

Usage:
    python wrapgen.py --types types.xml --output-dir build/generated \\
        --class-mappings java.util.Map:com.example.WrappedMap
"""

import argparse
import sys
import xml.etree.ElementTree as ET
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, ClassVar, NamedTuple, TextIO, Union

GENERATOR_NAME = "java-wrapper-gen"
SOURCE_EXTENSION = ".java"
IMPLICIT_PACKAGE = "java.lang"
FIELD_NAME = "wrappedObject"
INDENTATION = "    "


# ===--- CLI config contracts ---=== #


class ClassMapping(NamedTuple):
    wrappee: str
    wrapper_package: str
    wrapper_class: str

    def __str__(self) -> str:
        if self.wrapper_package:
            return f"{self.wrappee}:{self.wrapper_package}.{self.wrapper_class}"
        return f"{self.wrappee}:{self.wrapper_class}"


@dataclass(frozen=True)
class GenerateConfig:
    types_xml: Path
    output_dir: Path | None
    mappings: tuple[str, ...]
    create_dirs: bool = True
    to_stdout: bool = False


VALID_ERROR_CODES = {
    "MISSING_OUTPUT_DIR",
    "MISSING_MAPPINGS",
    "INVALID_MAPPING",
    "PATH_NOT_FOUND",
    "CONFLICT_OUTPUT_FLAGS",
}
USAGE_ERROR_CODES = {"MISSING_OUTPUT_DIR", "MISSING_MAPPINGS"}
MAPPING_SEPARATOR = ":"


class ConfigError(Exception):
    """Rejected command line or mapping token.

    ``code`` is one of VALID_ERROR_CODES; ``suggestion`` is printed as a
    hint under the message.
    """

    def __init__(self, code: str, message: str, suggestion: str | None = None):
        if code not in VALID_ERROR_CODES:
            raise ValueError(f"Unknown config error code: {code}")
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion

    @property
    def needs_usage(self) -> bool:
        return self.code in USAGE_ERROR_CODES

    def report_lines(self) -> list[str]:
        lines = [f"Config error [{self.code}]: {self.message}"]
        if self.suggestion:
            lines.append(f"Hint: {self.suggestion}")
        return lines


def split_type_name(full_name: str) -> tuple[str, str]:
    """Split a dotted name into (package, simple name) at the last dot."""
    package, _, simple = full_name.rpartition(".")
    return package, simple


def parse_class_mapping(raw: str) -> ClassMapping:
    tokens = raw.split(MAPPING_SEPARATOR)
    if len(tokens) != 2 or not all(token.strip() for token in tokens):
        raise ConfigError(
            "INVALID_MAPPING",
            f'Invalid class mapping format "{raw}"',
            "Use WRAPPEE:WRAPPER, for example java.util.Map:com.example.WrappedMap.",
        )
    wrappee, wrapper = (token.strip() for token in tokens)
    package, simple = split_type_name(wrapper)
    if not simple:
        raise ConfigError(
            "INVALID_MAPPING",
            f'Wrapper class name is empty in mapping "{raw}"',
            "The wrapper part must end with a class name.",
        )
    return ClassMapping(wrappee, package, simple)


_TYPES_HINT = (
    "Export the type registry for the classes you want to wrap and pass it:\n"
    "  --types /your/path/to/types.xml"
)


def validate_types_file(path: Path | None) -> Path:
    if path is None:
        raise ConfigError(
            "PATH_NOT_FOUND", "--types is required: no file given.", _TYPES_HINT
        )
    if not path.exists():
        raise ConfigError(
            "PATH_NOT_FOUND", f"Type registry not found: {path}", _TYPES_HINT
        )
    if not path.is_file():
        raise ConfigError(
            "PATH_NOT_FOUND", f"Type registry is not a file: {path}", _TYPES_HINT
        )
    return path


def build_argument_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="wrapgen",
        description="Generate delegating wrapper classes for Java types",
    )

    parser.add_argument("--types", type=Path, default=None)
    parser.add_argument(
        "--class-mappings",
        action="append",
        nargs="+",
        default=None,
        metavar="WRAPPEE:WRAPPER",
    )

    output_group = parser.add_mutually_exclusive_group()
    output_group.add_argument("--output-dir", type=Path, default=None)
    output_group.add_argument("--stdout", action="store_true", default=False)

    parser.add_argument("--no-create-dirs", action="store_true", default=False)

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = build_argument_parser()
    return parser.parse_args(argv)


def normalize_mappings(raw_mappings: list[list[str]] | None) -> tuple[str, ...]:
    """Flatten repeated ``--class-mappings`` groups into one token tuple.

    Each occurrence of the flag contributes one group. Tokens are stripped
    but otherwise kept as given, so a malformed one fails on its own later.
    """
    if not raw_mappings:
        return ()
    return tuple(token.strip() for group in raw_mappings for token in group)


def validate_config(args: argparse.Namespace) -> GenerateConfig:
    mappings = normalize_mappings(args.class_mappings)

    if args.stdout and args.output_dir is not None:
        raise ConfigError(
            "CONFLICT_OUTPUT_FLAGS",
            "--stdout cannot be combined with --output-dir.",
            "Write to a directory or to stdout, not both.",
        )

    if not args.stdout and args.output_dir is None:
        raise ConfigError(
            "MISSING_OUTPUT_DIR",
            "--output-dir is required.",
            "Pass --output-dir DIR, or --stdout to print the generated sources.",
        )

    if not mappings:
        raise ConfigError(
            "MISSING_MAPPINGS",
            "--class-mappings is required.",
            "Pass one or more WRAPPEE:WRAPPER tokens, "
            "for example java.util.Map:com.example.WrappedMap.",
        )

    types_xml = validate_types_file(args.types)

    return GenerateConfig(
        types_xml=types_xml,
        output_dir=args.output_dir,
        mappings=mappings,
        create_dirs=not args.no_create_dirs,
        to_stdout=bool(args.stdout),
    )


def build_config(argv: list[str] | None = None) -> GenerateConfig:
    return validate_config(parse_args(argv))


# ===--- Type descriptors ---=== #


@dataclass(frozen=True)
class PlainType:
    full_name: str
    kind: ClassVar[str] = "plain"

    @property
    def simple_name(self) -> str:
        return split_type_name(normalize_type_name(self.full_name))[1]


@dataclass(frozen=True)
class ArrayType:
    element_type: "TypeRef"
    kind: ClassVar[str] = "array"


@dataclass(frozen=True)
class ParameterizedType:
    full_name: str
    type_arguments: tuple["TypeRef", ...]
    kind: ClassVar[str] = "generic"


@dataclass(frozen=True)
class TypeVariable:
    name: str
    upper_bound: "TypeRef | None" = None
    lower_bound: "TypeRef | None" = None
    kind: ClassVar[str] = "var"


@dataclass(frozen=True)
class WildcardType:
    upper_bound: "TypeRef | None" = None
    lower_bound: "TypeRef | None" = None
    kind: ClassVar[str] = "wildcard"


@dataclass(frozen=True)
class CompoundType:
    """Intersection type such as the bound of ``T extends Number & Runnable``.

    A base type of None (or OBJECT) means the intersection has no class
    component and consists only of its interfaces.
    """

    base_type: "TypeRef | None" = None
    interfaces: tuple["TypeRef", ...] = ()
    kind: ClassVar[str] = "compound"


TypeRef = Union[
    PlainType, ArrayType, ParameterizedType, TypeVariable, WildcardType, CompoundType
]

OBJECT = PlainType("java.lang.Object")
VOID = PlainType("void")
OVERRIDE = PlainType("java.lang.Override")
DEPRECATED = PlainType("java.lang.Deprecated")


class Parameter(NamedTuple):
    type: TypeRef
    name: str


@dataclass(frozen=True)
class MethodDescriptor:
    name: str
    return_type: TypeRef = VOID
    parameters: tuple[Parameter, ...] = ()
    type_variables: tuple[TypeVariable, ...] = ()
    thrown_types: tuple[TypeRef, ...] = ()
    is_final: bool = False
    is_static: bool = False
    is_deprecated: bool = False

    @property
    def is_forwardable(self) -> bool:
        return not self.is_final and not self.is_static


@dataclass(frozen=True)
class ClassDescriptor:
    """Public shape of one class or interface.

    Attributes:
        full_name: Fully-qualified name, binary (``a.B$C``) or source form.
        is_interface: True for interfaces; the wrapper then implements the
            type instead of extending it.
        type_parameters: Declared type parameters, in declaration order.
        methods: Public member methods, in declaration order. Final and
            static methods are listed too; the generator skips them.
    """

    full_name: str
    is_interface: bool = False
    type_parameters: tuple[TypeVariable, ...] = ()
    methods: tuple[MethodDescriptor, ...] = ()

    @property
    def simple_name(self) -> str:
        return split_type_name(normalize_type_name(self.full_name))[1]

    def as_type(self) -> TypeRef:
        if self.type_parameters:
            return ParameterizedType(self.full_name, self.type_parameters)
        return PlainType(self.full_name)


def normalize_type_name(name: str) -> str:
    """Convert a binary nested-type name (``Outer$Inner``) to source form."""
    return name.replace("$", ".")


# ===--- Type registry ---=== #


class TypeLookupError(LookupError):
    def __init__(self, name: str):
        super().__init__(f"Type not found in registry: {name}")
        self.name = name


class RegistryFormatError(ValueError):
    pass


_TRUE_VALUES = {"true", "1", "yes"}


def _flag(elem: ET.Element, attr: str) -> bool:
    return elem.get(attr, "false").strip().lower() in _TRUE_VALUES


def _required_name(elem: ET.Element) -> str:
    name = elem.get("name")
    if not name:
        raise RegistryFormatError(f"<{elem.tag}> is missing its name attribute")
    return name.strip()


def _single_type_child(elem: ET.Element) -> TypeRef:
    children = list(elem)
    if len(children) != 1:
        raise RegistryFormatError(
            f"<{elem.tag}> must wrap exactly one type element, got {len(children)}"
        )
    return parse_type_element(children[0])


def _parse_bounds(elem: ET.Element) -> tuple[TypeRef | None, TypeRef | None]:
    upper = None
    lower = None
    for child in elem:
        if child.tag == "extends":
            upper = _single_type_child(child)
        elif child.tag == "super":
            lower = _single_type_child(child)
        else:
            raise RegistryFormatError(
                f"<{elem.tag}> accepts only <extends> and <super>, got <{child.tag}>"
            )
    return upper, lower


def parse_type_element(elem: ET.Element) -> TypeRef:
    tag = elem.tag
    if tag == "type":
        return PlainType(_required_name(elem))
    if tag == "array":
        return ArrayType(_single_type_child(elem))
    if tag == "generic":
        arguments = tuple(parse_type_element(child) for child in elem)
        if not arguments:
            raise RegistryFormatError(
                f"<generic name={elem.get('name')!r}> has no type arguments"
            )
        return ParameterizedType(_required_name(elem), arguments)
    if tag == "var":
        upper, lower = _parse_bounds(elem)
        return TypeVariable(_required_name(elem), upper, lower)
    if tag == "wildcard":
        upper, lower = _parse_bounds(elem)
        return WildcardType(upper, lower)
    if tag == "compound":
        base_type = None
        interfaces: list[TypeRef] = []
        for child in elem:
            if child.tag == "base":
                base_type = _single_type_child(child)
            else:
                interfaces.append(parse_type_element(child))
        return CompoundType(base_type, tuple(interfaces))
    raise RegistryFormatError(f"Unknown type element <{tag}>")


def parse_type_parameter(elem: ET.Element) -> TypeVariable:
    upper, lower = _parse_bounds(elem)
    return TypeVariable(_required_name(elem), upper, lower)


def parse_method(elem: ET.Element) -> MethodDescriptor:
    name = _required_name(elem)
    return_type: TypeRef = VOID
    parameters: list[Parameter] = []
    type_variables: list[TypeVariable] = []
    thrown: list[TypeRef] = []

    for child in elem:
        if child.tag == "typeparam":
            type_variables.append(parse_type_parameter(child))
        elif child.tag == "returns":
            return_type = _single_type_child(child)
        elif child.tag == "param":
            param_name = child.get("name") or f"arg{len(parameters)}"
            parameters.append(Parameter(_single_type_child(child), param_name))
        elif child.tag == "throws":
            thrown.append(_single_type_child(child))
        else:
            raise RegistryFormatError(
                f"Unexpected <{child.tag}> in <method name={name!r}>"
            )

    return MethodDescriptor(
        name=name,
        return_type=return_type,
        parameters=tuple(parameters),
        type_variables=tuple(type_variables),
        thrown_types=tuple(thrown),
        is_final=_flag(elem, "final"),
        is_static=_flag(elem, "static"),
        is_deprecated=_flag(elem, "deprecated"),
    )


def parse_class(elem: ET.Element) -> ClassDescriptor:
    if elem.tag not in ("class", "interface"):
        raise RegistryFormatError(f"Expected <class> or <interface>, got <{elem.tag}>")
    name = _required_name(elem)
    type_parameters: list[TypeVariable] = []
    methods: list[MethodDescriptor] = []

    for child in elem:
        if child.tag == "typeparam":
            type_parameters.append(parse_type_parameter(child))
        elif child.tag == "method":
            methods.append(parse_method(child))
        else:
            raise RegistryFormatError(
                f"Unexpected <{child.tag}> in <{elem.tag} name={name!r}>"
            )

    return ClassDescriptor(
        full_name=name,
        is_interface=elem.tag == "interface",
        type_parameters=tuple(type_parameters),
        methods=tuple(methods),
    )


@dataclass(frozen=True)
class TypeRegistry:
    """Known class descriptors, keyed by source-form fully-qualified name."""

    types: dict[str, ClassDescriptor]

    def lookup(self, name: str) -> ClassDescriptor:
        descriptor = self.types.get(normalize_type_name(name.strip()))
        if descriptor is None:
            raise TypeLookupError(name)
        return descriptor

    def names(self) -> list[str]:
        return sorted(self.types)


def registry_from_root(root: ET.Element) -> TypeRegistry:
    types: dict[str, ClassDescriptor] = {}
    for elem in root:
        descriptor = parse_class(elem)
        types[normalize_type_name(descriptor.full_name)] = descriptor
    return TypeRegistry(types)


def load_type_registry(path: Path) -> TypeRegistry:
    return registry_from_root(ET.parse(path).getroot())


# ===--- Rendering context ---=== #


class Scope:
    """One frame of the type-variable declaration chain.

    A frame records the type variables it declared. Lookups walk up to the
    root; a child frame never writes into its parent.
    """

    def __init__(self, parent: "Scope | None" = None):
        self.parent = parent
        self.declared: set[str] = set()

    def child(self) -> "Scope":
        return Scope(self)

    def is_declared(self, name: str) -> bool:
        frame: Scope | None = self
        while frame is not None:
            if name in frame.declared:
                return True
            frame = frame.parent
        return False

    def declare(self, name: str) -> None:
        self.declared.add(name)


# ===--- Import table ---=== #


class ImportTable:
    """Per-file simple-name to fully-qualified-name bindings.

    A simple name is bound to the first fully-qualified name requested for
    it. Later requests for a different name with the same simple name get
    the qualified form. Top-level ``java.lang`` types are abbreviated
    without an import, and names the file declares itself are reserved;
    both still claim their simple name.
    """

    def __init__(self):
        self._bindings: dict[str, str] = {}
        self._reserved: dict[str, str] = {}

    def is_bound(self, simple_name: str) -> str | None:
        return self._bindings.get(simple_name)

    def reserve(self, full_name: str) -> None:
        """Claim the simple name of ``full_name`` without importing it.

        Used for the type declared by the file itself, which is in scope
        under its simple name whatever its package.
        """
        full_name = normalize_type_name(full_name)
        self._reserved[split_type_name(full_name)[1]] = full_name

    def resolve(self, full_name: str) -> str:
        full_name = normalize_type_name(full_name)
        package, simple = split_type_name(full_name)
        if not package:
            return full_name

        claimed = self._reserved.get(simple) or self._bindings.get(simple)
        if claimed is not None:
            return simple if claimed == full_name else full_name

        if package == IMPLICIT_PACKAGE:
            self._reserved[simple] = full_name
        else:
            self._bindings[simple] = full_name
        return simple

    def imported_names(self) -> list[str]:
        return sorted(set(self._bindings.values()))

    def format_import_lines(self) -> list[str]:
        """Return import statements, sorted, grouped by leading segment.

        A blank line separates runs of names whose first dotted segment
        differs (``java.*`` from ``javax.*`` from ``com.*``).
        """
        lines: list[str] = []
        previous_root: str | None = None
        for full_name in self.imported_names():
            root = full_name.split(".", 1)[0]
            if previous_root is not None and root != previous_root:
                lines.append("")
            lines.append(f"import {full_name};")
            previous_root = root
        return lines


# ===--- Type renderer ---=== #


def _is_top_type(type_: TypeRef | None) -> bool:
    return type_ is None or type_ == OBJECT


def render_bounds(
    lower: TypeRef | None, upper: TypeRef | None, scope: Scope, imports: ImportTable
) -> str:
    parts: list[str] = []
    if not _is_top_type(lower):
        parts.append(f" super {render_type(lower, scope.child(), imports)}")
    if not _is_top_type(upper):
        parts.append(f" extends {render_type(upper, scope.child(), imports)}")
    return "".join(parts)


def render_type(type_: TypeRef, scope: Scope, imports: ImportTable) -> str:
    """Render a type descriptor as Java source text.

    Type variables not yet declared anywhere on the scope chain are declared
    in ``scope`` and rendered with their bounds; bounds and compound
    components are rendered in fresh child scopes so their own variables do
    not leak into the enclosing declaration.

    Args:
        type_: Descriptor to render.
        scope: Innermost frame of the declaration chain.
        imports: Import table of the file being generated. Mutated on the
            first sight of each abbreviated name.

    Returns:
        The type as it would be written in a declaration.
    """
    if isinstance(type_, ArrayType):
        return render_type(type_.element_type, scope, imports) + "[]"

    if isinstance(type_, ParameterizedType):
        arguments = ", ".join(
            render_type(argument, scope, imports) for argument in type_.type_arguments
        )
        return f"{imports.resolve(type_.full_name)}<{arguments}>"

    if isinstance(type_, TypeVariable):
        if scope.is_declared(type_.name):
            return type_.name
        scope.declare(type_.name)
        return type_.name + render_bounds(
            type_.lower_bound, type_.upper_bound, scope, imports
        )

    if isinstance(type_, CompoundType):
        parts: list[str] = []
        if not _is_top_type(type_.base_type):
            parts.append(render_type(type_.base_type, scope.child(), imports))
        parts.extend(
            render_type(interface, scope.child(), imports)
            for interface in type_.interfaces
        )
        return " & ".join(parts)

    if isinstance(type_, WildcardType):
        return "?" + render_bounds(
            type_.lower_bound, type_.upper_bound, scope, imports
        )

    if isinstance(type_, PlainType):
        return imports.resolve(type_.full_name)

    raise TypeError(f"Unsupported type descriptor: {type_!r}")


def render_type_parameters(
    type_variables: Iterable[TypeVariable], scope: Scope, imports: ImportTable
) -> str:
    rendered = [render_type(variable, scope, imports) for variable in type_variables]
    return f"<{', '.join(rendered)}>"


# ===--- Source emitter ---=== #


class SourceEmitter:
    """Append-only source buffer with its own type-variable scope.

    Child emitters share the import table of their parent but open a
    nested scope, so type variables declared while rendering a method are
    invisible to the class body. An attached child is emitted in place when
    the parent is converted to text.
    """

    def __init__(self, imports: ImportTable, scope: Scope | None = None):
        self.imports = imports
        self.scope = scope if scope is not None else Scope()
        self._segments: list[Union[str, "SourceEmitter"]] = []

    def append(self, text: str) -> "SourceEmitter":
        self._segments.append(text)
        return self

    def line(self, text: str = "") -> "SourceEmitter":
        return self.append(text).append("\n")

    def indent(self, times: int = 1) -> "SourceEmitter":
        return self.append(INDENTATION * times)

    def space(self) -> "SourceEmitter":
        return self.append(" ")

    def append_list(self, separator: str, parts: Iterable[str]) -> "SourceEmitter":
        return self.append(separator.join(parts))

    def type_text(self, type_: TypeRef) -> str:
        return render_type(type_, self.scope, self.imports)

    def append_type(self, type_: TypeRef) -> "SourceEmitter":
        return self.append(self.type_text(type_))

    def append_type_parameters(
        self, type_variables: Iterable[TypeVariable]
    ) -> "SourceEmitter":
        return self.append(
            render_type_parameters(type_variables, self.scope, self.imports)
        )

    def child(self, attach: bool = True) -> "SourceEmitter":
        block = SourceEmitter(self.imports, self.scope.child())
        if attach:
            self._segments.append(block)
        return block

    def __str__(self) -> str:
        return "".join(str(segment) for segment in self._segments)


class JavaFileEmitter(SourceEmitter):
    """Root emitter for one Java compilation unit.

    Owns the import table; the package line and import block are produced
    when the file is converted to text, after every type has been rendered.
    """

    def __init__(self, package_name: str = "", header_lines: Iterable[str] = ()):
        super().__init__(ImportTable())
        self.package_name = package_name
        self.header_lines = tuple(header_lines)

    def __str__(self) -> str:
        parts: list[str] = list(self.header_lines)
        if parts:
            parts.append("")
        if self.package_name:
            parts.extend([f"package {self.package_name};", ""])
        import_lines = self.imports.format_import_lines()
        if import_lines:
            parts.extend(import_lines)
            parts.append("")
        head = "\n".join(parts)
        if head:
            head += "\n"
        return head + super().__str__()


# ===--- Wrapper generation ---=== #


@dataclass(frozen=True)
class WrapperSpec:
    """One wrapper to generate.

    Attributes:
        wrappee: Descriptor of the wrapped class or interface.
        package_name: Package of the wrapper, empty for the default package.
        class_name: Simple name of the wrapper class.
    """

    wrappee: ClassDescriptor
    package_name: str
    class_name: str

    @property
    def full_class_name(self) -> str:
        if self.package_name:
            return f"{self.package_name}.{self.class_name}"
        return self.class_name


def default_wrapper_class_name(wrappee: ClassDescriptor) -> str:
    return f"Wrapped{wrappee.simple_name}"


def make_wrapper_spec(
    wrappee: ClassDescriptor, package_name: str = "", class_name: str | None = None
) -> WrapperSpec:
    return WrapperSpec(
        wrappee=wrappee,
        package_name=package_name,
        class_name=class_name or default_wrapper_class_name(wrappee),
    )


_HEADER_BORDER: str = "// x-------------------------------------------x //"


def format_file_header(spec: WrapperSpec) -> list[str]:
    """Return the comment block placed at the top of every generated file.

    Output format:
        // x-------------------------------------------x //
        // | Delegating wrapper for java.util.Map
        // | Generated by java-wrapper-gen
        // x-------------------------------------------x //

    The header names only the wrapped type so regenerating from the same
    registry yields byte-identical files.
    """
    return [
        _HEADER_BORDER,
        f"// | Delegating wrapper for {normalize_type_name(spec.wrappee.full_name)}",
        f"// | Generated by {GENERATOR_NAME}",
        _HEADER_BORDER,
    ]


def generate_constructor(w: SourceEmitter, spec: WrapperSpec) -> str:
    wrapped_type = spec.wrappee.as_type()
    w.indent().append(f"public {spec.class_name}(final ").append_type(wrapped_type)
    w.line(f" {FIELD_NAME}) {{")
    w.indent(2).line(f"this.{FIELD_NAME} = {FIELD_NAME};")
    return str(w.indent().line("}"))


def generate_method(method: MethodDescriptor, w: SourceEmitter) -> str:
    # Annotations
    w.indent().append("@").append_type(OVERRIDE).line()
    if method.is_deprecated:
        w.indent().append("@").append_type(DEPRECATED).line()

    w.indent().append("public ")

    if method.type_variables:
        w.append_type_parameters(method.type_variables).space()

    return_type = w.type_text(method.return_type)
    w.append(return_type).space()

    w.append(method.name).append("(")
    w.append_list(
        ", ",
        (f"final {w.type_text(p.type)} {p.name}" for p in method.parameters),
    )
    w.append(") ")

    if method.thrown_types:
        w.append("throws ")
        w.append_list(", ", (w.type_text(t) for t in method.thrown_types))
        w.space()
    w.line("{")

    # Body
    w.indent(2)
    if method.return_type != VOID:
        w.append("return ")
    w.append(f"{FIELD_NAME}.{method.name}(")
    w.append_list(", ", (p.name for p in method.parameters))
    w.line(");")

    return str(w.indent().line("}"))


def group_method_bodies(
    methods: Iterable[MethodDescriptor], parent: SourceEmitter
) -> dict[str, list[str]]:
    """Render every forwardable method and bucket the bodies by method name.

    Methods are rendered in declaration order, so the import table binds
    simple names in that order. Each bucket is sorted by body length;
    ties keep declaration order.
    """
    groups: dict[str, list[str]] = defaultdict(list)
    for method in methods:
        if not method.is_forwardable:
            continue
        groups[method.name].append(generate_method(method, parent.child(attach=False)))
    for bodies in groups.values():
        bodies.sort(key=len)
    return groups


def generate_wrapper(spec: WrapperSpec) -> str:
    """Generate the complete Java source of a delegating wrapper.

    Args:
        spec: Wrapped type plus wrapper package and class name.

    Returns:
        Source text of one compilation unit, ending with a newline.
        Generating the same WrapperSpec twice returns identical text.
    """
    wrappee = spec.wrappee
    wrapped_type = wrappee.as_type()
    writer = JavaFileEmitter(spec.package_name, format_file_header(spec))
    writer.imports.reserve(spec.full_class_name)

    # Class definition
    writer.append(f"public class {spec.class_name}")
    if wrappee.type_parameters:
        writer.append_type_parameters(wrappee.type_parameters)
    writer.append(" implements " if wrappee.is_interface else " extends ")
    writer.append_type(wrapped_type).line(" {")

    # Field
    writer.indent().append("private final ").append_type(wrapped_type)
    writer.line(f" {FIELD_NAME};").line()

    generate_constructor(writer.child(), spec)

    groups = group_method_bodies(wrappee.methods, writer)
    for name in sorted(groups):
        for body in groups[name]:
            writer.line().append(body)

    return str(writer.line("}"))


# ===--- Writer I/O functions ---=== #


@dataclass(frozen=True)
class FileWriteResult:
    """Result of writing a single generated file.

    Attributes:
        filename: Filename written, e.g. "WrappedMap.java".
        path: Absolute path of the written file.
        line_count: Number of newline characters in the written content.
        byte_count: Number of bytes written (UTF-8 encoded).
    """

    filename: str
    path: Path
    line_count: int
    byte_count: int


def wrapper_output_path(output_dir: Path, spec: WrapperSpec) -> Path:
    package_dir = Path(output_dir)
    if spec.package_name:
        package_dir = package_dir.joinpath(*spec.package_name.split("."))
    return package_dir / f"{spec.class_name}{SOURCE_EXTENSION}"


def write_wrapper_file(file_path: Path, spec: WrapperSpec) -> FileWriteResult:
    """Generate the wrapper and write it to exactly ``file_path``.

    The file is written in place; a failed write may leave it truncated.
    Regenerating is deterministic, so a retry overwrites it cleanly.

    Raises:
        OSError: Propagated directly if the filesystem write fails.
    """
    content = generate_wrapper(spec)
    file_path = Path(file_path)
    encoded = content.encode("utf-8")
    file_path.write_bytes(encoded)
    return FileWriteResult(
        filename=file_path.name,
        path=file_path.resolve(),
        line_count=content.count("\n"),
        byte_count=len(encoded),
    )


def write_wrapper(
    output_dir: Path, spec: WrapperSpec, create_dirs: bool = True
) -> FileWriteResult:
    """Write the wrapper under ``output_dir`` following the package layout.

    The file lands at ``<output_dir>/<package as dirs>/<ClassName>.java``.

    Args:
        output_dir: Root of the source tree.
        spec: Wrapper to generate.
        create_dirs: Create missing package directories when True.

    Raises:
        OSError: The package directory is missing (and create_dirs is
            False) or the write fails.
    """
    file_path = wrapper_output_path(output_dir, spec)
    if create_dirs:
        file_path.parent.mkdir(parents=True, exist_ok=True)
    return write_wrapper_file(file_path, spec)


def write_wrapper_stream(stream: BinaryIO, spec: WrapperSpec) -> int:
    encoded = generate_wrapper(spec).encode("utf-8")
    stream.write(encoded)
    return len(encoded)


# ===--- Pipeline ---=== #


@dataclass(frozen=True)
class MappingFailure:
    token: str
    message: str


@dataclass(frozen=True)
class GenerationReport:
    """Outcome of one run over all requested mappings.

    Attributes:
        files: Files written, in mapping order. Empty with --stdout.
        failures: Mappings that could not be generated, in mapping order.
    """

    files: tuple[FileWriteResult, ...]
    failures: tuple[MappingFailure, ...]

    @property
    def ok(self) -> bool:
        return not self.failures


def spec_for_mapping(registry: TypeRegistry, mapping: ClassMapping) -> WrapperSpec:
    wrappee = registry.lookup(mapping.wrappee)
    return make_wrapper_spec(wrappee, mapping.wrapper_package, mapping.wrapper_class)


def status_stream(config: GenerateConfig) -> TextIO:
    """Stream for progress messages; stderr when sources go to stdout."""
    return sys.stderr if config.to_stdout else sys.stdout


def run_generate(config: GenerateConfig) -> GenerationReport:
    """Generate one wrapper per mapping token in ``config``.

    A malformed token or an unknown wrappee aborts only that mapping; it is
    reported and recorded as a MappingFailure.

    Raises:
        OSError: Registry not readable or filesystem write failure.
        ET.ParseError: Malformed registry XML.
        RegistryFormatError: Registry XML with an unknown structure.
    """
    status = status_stream(config)
    print(f"Loading: {config.types_xml}", file=status)
    registry = load_type_registry(config.types_xml)
    print(f"  Registry: {len(registry.types)} types", file=status)

    files: list[FileWriteResult] = []
    failures: list[MappingFailure] = []
    for token in config.mappings:
        try:
            mapping = parse_class_mapping(token)
            spec = spec_for_mapping(registry, mapping)
        except ConfigError as err:
            print("\n".join(err.report_lines()), file=status)
            failures.append(MappingFailure(token, err.message))
            continue
        except TypeLookupError as err:
            print(f"Error: {err}", file=status)
            failures.append(MappingFailure(token, str(err)))
            continue

        print(f"Generating wrapper class for {mapping.wrappee}...", file=status)
        if config.to_stdout:
            write_wrapper_stream(sys.stdout.buffer, spec)
            sys.stdout.flush()
        else:
            assert config.output_dir is not None  # validate_config guarantees this
            files.append(write_wrapper(config.output_dir, spec, config.create_dirs))

    return GenerationReport(files=tuple(files), failures=tuple(failures))


# ===--- Summary report ---=== #


def format_generation_summary(report: GenerationReport) -> str:
    """Render the post-run report.

    Lists each written file with its line count, then each failed mapping
    with its token and reason. Returns a string with one trailing newline,
    or an empty string when nothing was written and nothing failed.
    """
    lines: list[str] = []
    if report.files:
        lines.append("Files written:")
        for file_result in report.files:
            count = f"{file_result.line_count:>6,} lines"
            lines.append(f"  {file_result.filename:<32} {count}")
    if report.failures:
        lines.append("Failed mappings:")
        for failure in report.failures:
            lines.append(f"  {failure.token}: {failure.message}")
    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def print_generation_summary(
    report: GenerationReport, stream: TextIO | None = None
) -> None:
    """Print the generation summary to ``stream`` (stdout by default).

    Thin wrapper around format_generation_summary, kept separate so the
    formatter stays testable without capturing output.
    """
    print(format_generation_summary(report), end="", file=stream or sys.stdout)


# ===--- Main generation ---=== #


def main(argv: list[str] | None = None):
    try:
        config = build_config(argv)
    except ConfigError as err:
        print("\n".join(err.report_lines()))
        if err.needs_usage:
            build_argument_parser().print_usage()
        raise SystemExit(1) from err

    status = status_stream(config)
    try:
        report = run_generate(config)
    except (OSError, ET.ParseError, RegistryFormatError) as err:
        print(f"Error: {err}", file=status)
        raise SystemExit(1) from err

    print_generation_summary(report, status)
    if not report.ok:
        raise SystemExit(1)
    print("Done", file=status)


if __name__ == "__main__":
    main()
