from __future__ import annotations

import wrapgen


def test_emitter_appends_lines_indents_and_lists_in_order() -> None:
    w = wrapgen.SourceEmitter(wrapgen.ImportTable())

    w.indent(2).append("call(").append_list(", ", ["a", "b"]).line(");")
    w.line().space().append("x")

    assert str(w) == "        call(a, b);\n\n x"


def test_emitter_append_type_records_imports() -> None:
    imports = wrapgen.ImportTable()
    w = wrapgen.SourceEmitter(imports)

    string = wrapgen.PlainType("java.lang.String")
    w.append_type(wrapgen.ParameterizedType("java.util.List", (string,)))

    assert str(w) == "List<String>"
    assert imports.imported_names() == ["java.util.List"]


def test_attached_child_is_emitted_in_place() -> None:
    w = wrapgen.SourceEmitter(wrapgen.ImportTable())

    w.append("a")
    block = w.child()
    w.append("c")
    block.append("b")

    assert str(w) == "abc"


def test_detached_child_is_not_emitted() -> None:
    w = wrapgen.SourceEmitter(wrapgen.ImportTable())

    w.append("a")
    block = w.child(attach=False)
    block.append("b")

    assert str(w) == "a"
    assert str(block) == "b"


def test_child_shares_imports_but_opens_a_nested_scope() -> None:
    w = wrapgen.SourceEmitter(wrapgen.ImportTable())
    w.append_type_parameters((wrapgen.TypeVariable("T"),))

    block = w.child(attach=False)
    block.append_type_parameters(
        (wrapgen.TypeVariable("U", upper_bound=wrapgen.PlainType("java.io.File")),)
    )
    block.space().append_type(wrapgen.TypeVariable("T"))

    assert block.imports is w.imports
    assert block.scope.parent is w.scope
    assert str(block) == "<U extends File> T"
    assert not w.scope.is_declared("U")
    assert w.imports.imported_names() == ["java.io.File"]


def test_java_file_emitter_assembles_package_imports_and_body() -> None:
    w = wrapgen.JavaFileEmitter("com.example")
    w.append("class A extends ").append_type(wrapgen.PlainType("javax.swing.JPanel"))
    w.append(" implements ").append_type(wrapgen.PlainType("java.io.Serializable"))
    w.line(" {}")

    assert str(w) == (
        "package com.example;\n"
        "\n"
        "import java.io.Serializable;\n"
        "\n"
        "import javax.swing.JPanel;\n"
        "\n"
        "class A extends JPanel implements Serializable {}\n"
    )


def test_java_file_emitter_default_package_without_imports() -> None:
    w = wrapgen.JavaFileEmitter()
    w.line("class A {}")

    assert str(w) == "class A {}\n"


def test_java_file_emitter_header_precedes_package() -> None:
    w = wrapgen.JavaFileEmitter("p", header_lines=["// one", "// two"])
    w.line("class A {}")

    assert str(w) == "// one\n// two\n\npackage p;\n\nclass A {}\n"


def test_java_file_emitter_imports_include_types_rendered_in_children() -> None:
    w = wrapgen.JavaFileEmitter()
    w.line("class A {")
    w.child().indent().append_type(wrapgen.PlainType("java.util.UUID")).line(" id;")
    w.line("}")

    assert str(w) == "import java.util.UUID;\n\nclass A {\n    UUID id;\n}\n"
