"""Unit tests for format providers and the extension registry."""

from __future__ import annotations

import io

import httpx
import pytest

from strata.core import provider as registry
from strata.core.errors import (
    ParseException,
    SourceNotFoundException,
    UnsupportedExtensionException,
)
from strata.core.provider import MappedProvider, content_marker
from strata.core.source import FlatSource, TreeSource
from strata.sources.env_file import DotEnvProvider, EnvProvider
from strata.sources.ini_file import IniProvider
from strata.sources.json_file import JsonProvider
from strata.sources.properties import PropertiesProvider, dump_properties, parse_properties
from strata.sources.toml_file import TomlProvider
from strata.sources.xml_file import XmlProvider
from strata.sources.yaml_file import YamlProvider

DATA = {
    "server": {"host": "localhost", "port": 8080, "debug": True},
    "tags": ["a", "b"],
    "ratio": 0.5,
}


class TestFormats:
    """Test suite for parsing each built-in format."""

    def test_json(self):
        """Test parsing JSON."""
        source = JsonProvider().from_string('{"server": {"port": 8080}}')
        assert isinstance(source, TreeSource)
        assert source.get("server.port").to_int() == 8080

    def test_yaml(self):
        """Test parsing YAML."""
        source = YamlProvider().from_string("server:\n  hosts: [a, b]\n")
        assert source.get("server.hosts").to_value() == ["a", "b"]

    def test_yaml_empty_document(self):
        """Test that an empty document is an empty map."""
        assert YamlProvider().from_string("").to_value() == {}

    def test_toml(self):
        """Test parsing TOML."""
        source = TomlProvider().from_string('[server]\nport = 8080\nwhen = 2020-01-02\n')
        assert source.get("server.port").to_long() == 8080
        assert source.get("server.when").to_text() == "2020-01-02"

    def test_ini(self):
        """Test parsing INI sections as paths."""
        source = IniProvider().from_string("[server]\nPort = 8080\n")
        assert isinstance(source, FlatSource)
        assert source.get("server.Port").to_int() == 8080

    def test_ini_default_section(self):
        """Test that DEFAULT keys sit at the root and are inherited."""
        source = IniProvider().from_string("[DEFAULT]\nenv = prod\n[db]\nurl = x\n")
        assert source.get("env").to_text() == "prod"
        assert source.get("db.env").to_text() == "prod"

    def test_properties(self):
        """Test parsing Java properties."""
        text = (
            "# comment\n"
            "! another comment\n"
            "source.test.type = properties\n"
            "colon:value\n"
            "space value\n"
            "multi = one, \\\n"
            "        two\n"
            "escaped\\=key = \\u0041\\tb\n"
        )
        assert parse_properties(text) == {
            "source.test.type": "properties",
            "colon": "value",
            "space": "value",
            "multi": "one, two",
            "escaped=key": "A\tb",
        }
        source = PropertiesProvider().from_string(text)
        assert source.get("source.test.type").to_text() == "properties"
        assert [n.to_text() for n in source.get("multi").to_list()] == ["one", "two"]

    def test_properties_escapes_round_trip(self):
        """Test that dumped properties parse back to the same values."""
        flat = {"a key": " lead", "b": "x=y:z#", "c": "back\\slash\nnewline"}
        assert parse_properties(dump_properties(flat)) == flat

    def test_properties_bad_unicode_escape(self):
        """Test that a malformed escape is a parse error."""
        with pytest.raises(ParseException):
            PropertiesProvider().from_string("a = \\u12\n")

    def test_xml(self):
        """Test parsing Hadoop style XML."""
        text = (
            "<configuration>"
            "<property><name>server.port</name><value>8080</value></property>"
            "<property><name>server.host</name><value/></property>"
            "</configuration>"
        )
        source = XmlProvider().from_string(text)
        assert source.get("server.port").to_int() == 8080
        assert source.get("server.host").to_text() == ""

    def test_xml_wrong_root(self):
        """Test that another root element is a parse error."""
        with pytest.raises(ParseException):
            XmlProvider().from_string("<config/>")

    def test_dotenv(self):
        """Test parsing a .env file without touching os.environ."""
        text = 'export APP_NAME="my app"\nserver.port=8080 # inline\nURL=${HOST}:$APP_NAME\n'
        source = DotEnvProvider(environ={"HOST": "h"}).from_string(text)
        assert source.get("APP_NAME").to_text() == "my app"
        assert source.get("server.port").to_int() == 8080
        assert source.get("URL").to_text() == "h:my app"

    @pytest.mark.parametrize(
        "provider, text",
        [
            (JsonProvider(), "{"),
            (YamlProvider(), "a: [b"),
            (TomlProvider(), "a = "),
            (IniProvider(), "no section"),
            (XmlProvider(), "<configuration>"),
        ],
    )
    def test_malformed_content(self, provider, text):
        """Test that malformed content raises ParseException."""
        with pytest.raises(ParseException) as exc:
            provider.from_string(text)
        assert exc.value.__cause__ is not None

    def test_root_must_be_a_map(self):
        """Test that a scalar document is rejected."""
        with pytest.raises(ParseException):
            JsonProvider().from_string("[1, 2]")


class TestEnvProvider:
    """Test suite for process environment sources."""

    def test_keys_become_paths(self):
        """Test that variable names are lowercased and split on underscores."""
        source = EnvProvider().from_env(environ={"SERVER_PORT": "8080", "HOME": "/root"})
        assert source.get("server.port").to_int() == 8080
        assert source.get("home").to_text() == "/root"
        assert source.info["type"] == "system-environment"

    def test_prefix(self):
        """Test that a prefix selects and strips variables."""
        environ = {"APP_SERVER_HOST": "h", "OTHER": "x", "APPLE_X": "1"}
        source = EnvProvider().from_env("APP", environ)
        assert source.to_value() == {"server": {"host": "h"}}

    def test_prefix_with_separator(self):
        """Test that a prefix ending in an underscore matches the same variables."""
        environ = {"APP_DEBUG": "true", "APPLE_X": "1"}
        source = EnvProvider().from_env("APP_", environ)
        assert source.to_value() == {"debug": "true"}
        assert source.get("debug").to_boolean() is True


class TestEntryPoints:
    """Test suite for provider entry points and provenance."""

    def test_from_string_marks_content(self):
        """Test that literal content is recorded, truncated."""
        source = JsonProvider().from_string('{"a": 1}')
        assert source.info["content"] == content_marker('{"a": 1}')
        assert source.info["type"] == "json"
        long = "x" * 80
        assert content_marker(long).count("x") == 50

    def test_from_reader_and_streams(self):
        """Test text and byte stream entry points."""
        provider = JsonProvider()
        assert provider.from_reader(io.StringIO('{"a": 1}')).get("a").to_int() == 1
        assert provider.from_input_stream(io.BytesIO(b'{"a": 2}')).get("a").to_int() == 2

    def test_stream_provenance(self, tmp_path):
        """Test that streams record their name or the given info."""
        file = tmp_path / "app.json"
        file.write_text("{not json")
        with open(file) as reader:
            with pytest.raises(ParseException) as exc:
                JsonProvider().from_reader(reader)
        assert str(file) in str(exc.value)
        source = JsonProvider().from_input_stream(io.BytesIO(b"{}"), info={"stream": "upload"})
        assert source.info == {"type": "json", "stream": "upload"}
        assert JsonProvider().from_bytes(b"{}", info={"stream": "blob"}).info["stream"] == "blob"

    def test_from_bytes_slice(self):
        """Test reading a slice of a byte array."""
        data = b'xx{"a": 3}yy'
        assert JsonProvider().from_bytes(data, 2, 8).get("a").to_int() == 3

    def test_from_file(self, tmp_path):
        """Test that files record their path."""
        file = tmp_path / "app.yaml"
        file.write_text("a: 1\n")
        source = YamlProvider().from_file(file)
        assert source.info["file"] == str(file)
        assert source.get("a").info["file"] == str(file)

    def test_from_missing_file(self, tmp_path):
        """Test that a missing file raises SourceNotFoundException."""
        with pytest.raises(SourceNotFoundException):
            YamlProvider().from_file(tmp_path / "missing.yaml")

    def test_from_file_url(self, tmp_path):
        """Test reading a file: URL."""
        file = tmp_path / "app.json"
        file.write_text('{"a": 1}')
        source = JsonProvider().from_url(file.as_uri())
        assert source.info["url"] == file.as_uri()
        assert source.get("a").to_int() == 1

    def test_from_http_url(self):
        """Test reading an http URL through httpx."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/app.json":
                return httpx.Response(200, json={"server": {"port": 8080}})
            return httpx.Response(404)

        client = httpx.Client(transport=httpx.MockTransport(handler))
        source = JsonProvider().from_url("http://config.local/app.json", client)
        assert source.get("server.port").to_int() == 8080
        with pytest.raises(SourceNotFoundException):
            JsonProvider().from_url("http://config.local/missing.json", client)

    def test_from_resource(self, tmp_path, monkeypatch):
        """Test reading a resource bundled in a package."""
        package = tmp_path / "bundled_settings"
        package.mkdir()
        (package / "__init__.py").write_text("")
        (package / "source.properties").write_text("type = resource\n")
        monkeypatch.syspath_prepend(str(tmp_path))
        source = PropertiesProvider().from_resource("source.properties", "bundled_settings")
        assert source.info["resource"] == "source.properties"
        assert source.get("type").to_text() == "resource"
        with pytest.raises(SourceNotFoundException):
            PropertiesProvider().from_resource("missing.properties", "bundled_settings")
        with pytest.raises(SourceNotFoundException):
            PropertiesProvider().from_resource("source.properties", "no_such_package_here")

    def test_mapped_provider(self):
        """Test that a mapped provider post-processes its sources."""
        mapped = JsonProvider().map(lambda s: s.with_prefix("app"))
        assert isinstance(mapped, MappedProvider)
        source = mapped.from_string('{"a": 1}')
        assert source.get("app.a").to_int() == 1

    def test_mapped_transforms_compose_in_order(self):
        """Test that transforms run in the order they were added."""
        mapped = JsonProvider().map(lambda s: s.with_prefix("a")).map(lambda s: s.with_prefix("b"))
        assert mapped.from_string('{"x": 1}').get("b.a.x").to_int() == 1


class TestDump:
    """Test suite for writing formats back."""

    @pytest.mark.parametrize(
        "provider",
        [JsonProvider(), YamlProvider(), TomlProvider()],
    )
    def test_typed_formats_round_trip(self, provider):
        """Test that typed formats keep values and types."""
        assert provider.from_string(provider.dump(DATA)).to_value() == DATA

    @pytest.mark.parametrize(
        "provider",
        [PropertiesProvider(), XmlProvider(), DotEnvProvider(environ={}), IniProvider()],
    )
    def test_flat_formats_round_trip(self, provider):
        """Test that flat formats keep values readable with coercion."""
        source = provider.from_string(provider.dump(DATA))
        assert source.get("server.host").to_text() == "localhost"
        assert source.get("server.port").to_int() == 8080
        assert source.get("server.debug").to_boolean() is True
        assert [n.to_text() for n in source.get("tags").to_list()] == ["a", "b"]
        assert source.get("ratio").to_double() == 0.5

    def test_provider_without_dump(self):
        """Test that a provider without dump refuses to write."""

        class ReadOnly(JsonProvider):
            dump = registry.Provider.dump

        with pytest.raises(NotImplementedError):
            ReadOnly().dump({})


class TestRegistry:
    """Test suite for the extension registry."""

    @pytest.mark.parametrize("ext", ["json", "yaml", "yml", "toml", "ini", "properties", "xml", "env"])
    def test_builtin_extensions(self, ext):
        """Test that built-in formats are registered."""
        assert registry.lookup(ext) is not None

    def test_extension_normalised(self):
        """Test that case and leading dots are ignored."""
        assert registry.of(".JSON") is registry.of("json")

    def test_register_and_unregister(self, clean_registry):
        """Test the register/unregister round trip."""
        with pytest.raises(UnsupportedExtensionException):
            registry.of("txt")
        provider = PropertiesProvider()
        registry.register_extension("txt", provider)
        assert registry.of("txt") is provider
        assert registry.unregister_extension("txt") is provider
        with pytest.raises(UnsupportedExtensionException) as exc:
            registry.of("txt", "notes.txt")
        assert "notes.txt" in str(exc.value)
