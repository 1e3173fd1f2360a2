"""Data models for the canonical structural model.

Attributes are snake_case in Python and serialize with PascalCase aliases
(``NodeName``, ``MultipleExtend``, ...) so JSON output uses the canonical
field names.
"""

import json
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal


class DataStructType(str, Enum):
    """Kind of a top-level or nested declaration."""

    CLASS = "Class"
    ENUM = "Enum"
    INTERFACE = "Interface"
    MESSAGE = "Message"


class CodeModel(BaseModel):
    """Base model sharing the PascalCase alias configuration."""

    model_config = ConfigDict(
        alias_generator=to_pascal,
        populate_by_name=True,
        use_enum_values=False,
    )


class CodePosition(CodeModel):
    """Source span of a declaration; lines and columns are 0-based."""

    start_line: int = 0
    start_column: int = 0
    end_line: int = 0
    end_column: int = 0
    start_byte: int = 0
    end_byte: int = 0


class CodeAnnotation(CodeModel):
    """Annotation or decorator attached to a declaration."""

    name: str
    parameters: dict[str, str] = Field(default_factory=dict)


class CodeParameter(CodeModel):
    """Function/method parameter."""

    name: str
    type: str = ""


class CodeField(CodeModel):
    """Field, property, enum constant or message field."""

    name: str
    type: str = ""
    is_array: bool = False
    is_nullable: bool = False
    default: str | None = None
    comment: str = ""
    annotations: list[CodeAnnotation] = Field(default_factory=list)


class CodeFunction(CodeModel):
    """Function, method, constructor or rpc."""

    name: str
    return_type: str = ""
    parameters: list[CodeParameter] = Field(default_factory=list)
    is_static: bool = False
    is_constructor: bool = False
    is_async: bool = False
    decorators: list[str] = Field(default_factory=list)
    annotations: list[CodeAnnotation] = Field(default_factory=list)
    function_calls: list[str] = Field(default_factory=list)
    position: CodePosition = Field(default_factory=CodePosition)
    content: str = ""

    @property
    def signature(self) -> str:
        """Get function signature string."""
        params = ", ".join(
            f"{p.name}: {p.type}" if p.type else p.name for p in self.parameters
        )
        ret = f" -> {self.return_type}" if self.return_type else ""
        return f"{self.name}({params}){ret}"


class CodeDataStruct(CodeModel):
    """Canonical description of one class-like declaration."""

    node_name: str
    module: str = ""
    type: DataStructType = DataStructType.CLASS
    package: str = ""
    file_path: str = ""
    fields: list[CodeField] = Field(default_factory=list)
    multiple_extend: list[str] = Field(default_factory=list)
    implements: list[str] = Field(default_factory=list)
    extend: str = ""
    functions: list[CodeFunction] = Field(default_factory=list)
    inner_structures: list["CodeDataStruct"] = Field(default_factory=list)
    annotations: list[CodeAnnotation] = Field(default_factory=list)
    function_calls: list[str] = Field(default_factory=list)
    parameters: list[CodeParameter] = Field(default_factory=list)
    imports: list[str] = Field(default_factory=list)
    exports: list[str] = Field(default_factory=list)
    extension: dict[str, Any] = Field(default_factory=dict)
    position: CodePosition = Field(default_factory=CodePosition)
    content: str = ""

    @property
    def is_function_holder(self) -> bool:
        """Whether this struct only gathers top-level functions."""
        return bool(self.extension.get("function_holder"))

    def iter_structures(self):
        """Yield this struct and every nested struct, depth first."""
        yield self
        for inner in self.inner_structures:
            yield from inner.iter_structures()

    def find_function(self, name: str) -> CodeFunction | None:
        """Get a function of this struct by name."""
        for func in self.functions:
            if func.name == name:
                return func
        return None

    def find_field(self, name: str) -> CodeField | None:
        """Get a field of this struct by name."""
        for field in self.fields:
            if field.name == name:
                return field
        return None


class DiagnosticLevel(str, Enum):
    """Severity of a per-file diagnostic."""

    WARNING = "warning"
    ERROR = "error"


class Diagnostic(BaseModel):
    """Problem reported for one file of a batch run."""

    file_path: str
    language: str | None = None
    level: DiagnosticLevel = DiagnosticLevel.ERROR
    error_type: str = ""
    message: str = ""


class FileResult(BaseModel):
    """Structures extracted from one file of a batch run."""

    file_path: str
    language: str
    structs: list[CodeDataStruct] = Field(default_factory=list)


class BatchResult(BaseModel):
    """Outcome of parsing a set of files."""

    results: list[FileResult] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    @property
    def errors(self) -> list[Diagnostic]:
        """Diagnostics for files that produced no result."""
        return [d for d in self.diagnostics if d.level == DiagnosticLevel.ERROR]

    @property
    def struct_count(self) -> int:
        """Total number of top-level structures across all files."""
        return sum(len(r.structs) for r in self.results)


def structs_to_json(structs: list[CodeDataStruct], indent: int | None = 2) -> str:
    """Serialize structures with their canonical PascalCase field names."""
    payload = [s.model_dump(mode="json", by_alias=True) for s in structs]
    return json.dumps(payload, indent=indent, ensure_ascii=False)
