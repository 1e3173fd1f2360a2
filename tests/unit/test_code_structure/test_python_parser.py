"""Tests for the Python structurer."""

import pytest

from codestruct.code_structure.languages.python_parser import PythonStructurer
from codestruct.code_structure.models import DataStructType


@pytest.fixture
def parser(catalog):
    """Create an initialized Python structurer."""
    structurer = PythonStructurer()
    structurer.init(catalog)
    return structurer


class TestPythonImports:
    """Tests for import extraction."""

    def test_imports(self, parser):
        """Test plain, aliased, relative and wildcard imports."""
        code = """
import os, sys as system
from typing import List, Optional as Opt
from . import utils
from pkg.sub import *

class A:
    pass
"""
        a = parser.parse_file(code, "a.py")[0]

        assert a.imports == [
            "os",
            "sys",
            "typing.List",
            "typing.Optional",
            ".utils",
            "pkg.sub.*",
        ]


class TestPythonClasses:
    """Tests for class extraction."""

    def test_bases_and_metaclass(self, parser):
        """Test base classes and keyword arguments."""
        code = """
class Service(Base, LoggingMixin, metaclass=Registry):
    pass
"""
        service = parser.parse_file(code, "service.py")[0]

        assert service.type == DataStructType.CLASS
        assert service.extend == "Base"
        assert service.multiple_extend == ["Base", "LoggingMixin"]
        assert service.extension["metaclass"] == "Registry"

    def test_enum(self, parser):
        """Test Enum subclasses become Enum structures."""
        code = """
class Color(enum.Enum):
    RED = 1
    GREEN = 2
"""
        color = parser.parse_file(code, "color.py")[0]

        assert color.type == DataStructType.ENUM
        assert [(f.name, f.default) for f in color.fields] == [("RED", "1"), ("GREEN", "2")]

    @pytest.mark.parametrize("base", ["Protocol", "typing.Protocol", "ABC", "Protocol[T]"])
    def test_interface_bases(self, parser, base):
        """Test Protocol and ABC subclasses become Interface."""
        code = f"class Reader({base}):\n    def read(self) -> bytes: ...\n"
        reader = parser.parse_file(code, "reader.py")[0]

        assert reader.type == DataStructType.INTERFACE
        assert reader.find_function("read").return_type == "bytes"

    def test_decorated_class_and_fields(self, parser):
        """Test class decorators and annotated class attributes."""
        code = """
@dataclass(frozen=True, order=False)
class User:
    name: str = "anon"
    tags: list[str]
    manager: Optional["User"] = None
    email: str | None = None
    count = 0
"""
        user = parser.parse_file(code, "user.py")[0]

        assert user.annotations[0].name == "dataclass"
        assert user.annotations[0].parameters == {"frozen": "True", "order": "False"}
        assert [f.name for f in user.fields] == ["name", "tags", "manager", "email", "count"]
        assert user.find_field("name").type == "str"
        assert user.find_field("name").default == '"anon"'
        assert user.find_field("tags").is_array
        assert user.find_field("tags").default is None
        assert user.find_field("manager").is_nullable
        assert user.find_field("email").is_nullable
        assert not user.find_field("name").is_nullable
        assert user.find_field("count").type == ""

    def test_inner_class(self, parser):
        """Test nested classes become inner structures."""
        code = """
class Outer:
    class Meta:
        ordering = ["name"]

    def method(self):
        pass
"""
        structs = parser.parse_file(code, "models.py")

        assert len(structs) == 1
        outer = structs[0]
        assert outer.inner_structures[0].module == "Outer.Meta"
        assert outer.inner_structures[0].find_field("ordering") is not None
        assert [f.name for f in outer.functions] == ["method"]
        assert outer.fields == []

    def test_instance_attributes_not_fields(self, parser):
        """Test only class-body assignments are fields, not ``self.`` attributes."""
        code = """
class Account:
    kind = "basic"

    def __init__(self, owner):
        self.owner = owner
"""
        account = parser.parse_file(code, "account.py")[0]

        assert [f.name for f in account.fields] == ["kind"]
        assert account.find_field("owner") is None


class TestPythonFunctions:
    """Tests for methods and module functions."""

    def test_method_details(self, parser):
        """Test parameters, async, static and constructor detection."""
        code = """
class Client:
    def __init__(self, base_url: str, retries=3):
        self.base_url = base_url

    async def fetch(self, path: str, *args, timeout: int = 5, **kwargs) -> bytes:
        return await self._send(path)

    @staticmethod
    def build(config):
        return Client(config.url)

    @property
    def url(self):
        return self.base_url
"""
        client = parser.parse_file(code, "client.py")[0]

        init = client.find_function("__init__")
        assert init.is_constructor
        assert [p.name for p in init.parameters] == ["self", "base_url", "retries"]
        assert init.parameters[1].type == "str"

        fetch = client.find_function("fetch")
        assert fetch.is_async
        assert fetch.return_type == "bytes"
        assert [p.name for p in fetch.parameters] == ["self", "path", "*args", "timeout", "**kwargs"]
        assert fetch.parameters[3].type == "int"
        assert fetch.function_calls == ["self._send"]

        build = client.find_function("build")
        assert build.is_static
        assert build.decorators == ["staticmethod"]
        assert build.function_calls == ["Client"]

        assert client.find_function("url").decorators == ["property"]
        assert client.function_calls == ["self._send", "Client"]

    def test_module_functions_in_holder(self, parser):
        """Test module level functions go into the function holder."""
        code = """
def main():
    def helper():
        return load()

    config = helper()
    print(config)

def load():
    return {}
"""
        structs = parser.parse_file(code, "main.py")

        assert len(structs) == 1
        holder = structs[0]
        assert holder.node_name == "default"
        assert holder.is_function_holder
        assert [f.name for f in holder.functions] == ["main", "load"]
        assert holder.find_function("main").function_calls == ["load", "helper", "print"]

    def test_holder_after_classes(self, parser):
        """Test the holder is emitted after the declared classes."""
        code = "def first():\n    pass\n\nclass Later:\n    pass\n"
        structs = parser.parse_file(code, "mod.py")
        assert [s.node_name for s in structs] == ["Later", "default"]

    def test_lambda_body_calls(self, parser):
        """Test calls inside a lambda count for the enclosing function."""
        code = "def sort(items):\n    return sorted(items, key=lambda i: weight(i))\n"
        holder = parser.parse_file(code, "sort.py")[0]
        assert holder.functions[0].function_calls == ["sorted", "weight"]


class TestPythonEdgeCases:
    """Tests for empty input."""

    def test_empty_file(self, parser):
        """Test an empty module yields no structures."""
        assert parser.parse_file("", "__init__.py") == []

    def test_only_statements(self, parser):
        """Test a module without classes or functions."""
        assert parser.parse_file("x = 1\nprint(x)\n", "script.py") == []
