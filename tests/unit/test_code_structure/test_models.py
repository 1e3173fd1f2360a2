"""Tests for code structure data models."""

import json

from codestruct.code_structure.models import (
    BatchResult,
    CodeDataStruct,
    CodeField,
    CodeFunction,
    CodeParameter,
    DataStructType,
    Diagnostic,
    DiagnosticLevel,
    FileResult,
    structs_to_json,
)


class TestCodeFunction:
    """Tests for CodeFunction model."""

    def test_defaults(self):
        """Test creating a bare function."""
        func = CodeFunction(name="run")
        assert func.return_type == ""
        assert func.parameters == []
        assert not func.is_static
        assert not func.is_constructor
        assert not func.is_async

    def test_signature(self):
        """Test signature property."""
        func = CodeFunction(
            name="add",
            parameters=[CodeParameter(name="a", type="int"), CodeParameter(name="b")],
            return_type="int",
        )
        assert func.signature == "add(a: int, b) -> int"


class TestCodeDataStruct:
    """Tests for CodeDataStruct model."""

    def test_defaults(self):
        """Test default type and empty collections."""
        struct = CodeDataStruct(node_name="Foo")
        assert struct.type == DataStructType.CLASS
        assert struct.fields == []
        assert struct.inner_structures == []
        assert not struct.is_function_holder

    def test_function_holder(self):
        """Test the holder flag lives in extension."""
        holder = CodeDataStruct(node_name="default", extension={"function_holder": True})
        assert holder.is_function_holder

    def test_iter_structures_depth_first(self):
        """Test nested structures are yielded depth first."""
        leaf = CodeDataStruct(node_name="C")
        middle = CodeDataStruct(node_name="B", inner_structures=[leaf])
        root = CodeDataStruct(node_name="A", inner_structures=[middle, CodeDataStruct(node_name="D")])

        assert [s.node_name for s in root.iter_structures()] == ["A", "B", "C", "D"]

    def test_find_members(self):
        """Test finding functions and fields by name."""
        struct = CodeDataStruct(
            node_name="Foo",
            fields=[CodeField(name="x", type="int")],
            functions=[CodeFunction(name="bar")],
        )
        assert struct.find_field("x").type == "int"
        assert struct.find_function("bar") is not None
        assert struct.find_function("missing") is None
        assert struct.find_field("missing") is None

    def test_pascal_case_aliases(self):
        """Test serialization uses the canonical field names."""
        struct = CodeDataStruct(
            node_name="Foo",
            multiple_extend=["A", "B"],
            function_calls=["bar"],
        )
        data = struct.model_dump(by_alias=True, mode="json")

        assert data["NodeName"] == "Foo"
        assert data["MultipleExtend"] == ["A", "B"]
        assert data["FunctionCalls"] == ["bar"]
        assert data["Type"] == "Class"

    def test_populate_by_alias(self):
        """Test models accept the aliased names too."""
        struct = CodeDataStruct.model_validate({"NodeName": "Foo", "Type": "Enum"})
        assert struct.node_name == "Foo"
        assert struct.type == DataStructType.ENUM


class TestStructsToJson:
    """Tests for structs_to_json."""

    def test_round_trip(self):
        """Test JSON output parses back into the same models."""
        structs = [
            CodeDataStruct(
                node_name="Foo",
                fields=[CodeField(name="x", type="int", is_array=True)],
                inner_structures=[CodeDataStruct(node_name="Inner", module="Foo.Inner")],
            )
        ]
        payload = json.loads(structs_to_json(structs))

        assert payload[0]["NodeName"] == "Foo"
        assert payload[0]["Fields"][0]["IsArray"] is True
        assert payload[0]["InnerStructures"][0]["Module"] == "Foo.Inner"
        assert [CodeDataStruct.model_validate(item) for item in payload] == structs

    def test_empty(self):
        """Test an empty list serializes to an empty JSON array."""
        assert json.loads(structs_to_json([])) == []


class TestBatchResult:
    """Tests for BatchResult."""

    def test_errors_and_counts(self):
        """Test error filtering and struct totals."""
        batch = BatchResult(
            results=[
                FileResult(file_path="a.java", language="java", structs=[CodeDataStruct(node_name="A")]),
                FileResult(
                    file_path="b.go",
                    language="go",
                    structs=[CodeDataStruct(node_name="B"), CodeDataStruct(node_name="C")],
                ),
            ],
            diagnostics=[
                Diagnostic(file_path="c.java", level=DiagnosticLevel.ERROR, error_type="ParseFailureError"),
                Diagnostic(file_path="b.go", level=DiagnosticLevel.WARNING, error_type="SyntaxError"),
            ],
        )

        assert batch.struct_count == 3
        assert [d.file_path for d in batch.errors] == ["c.java"]
