"""
Core parsing tests for cargo-manifest.
Tests dependency normalization, lookup and the error taxonomy.
"""

import dataclasses
import threading

import pytest

from cargo_manifest import (
    CargoToml,
    Dependency,
    InvalidFieldError,
    MalformedManifestError,
    ManifestError,
    MissingVersionError,
    get_dependency,
    parse_cargo_toml,
    parse_cargo_toml_file,
)
from cargo_manifest.error_handling import ErrorCategory, get_error_handler
from cargo_manifest.parsers import ValueKind, _classify_value, _normalize_dependency


class TestDependencyParsing:
    """Test the accepted ways of declaring a dependency."""

    def test_parse_sample_manifest(self, sample_cargo_text):
        """Test string, version-table and git-tag dependencies together."""
        manifest = parse_cargo_toml(sample_cargo_text)

        assert len(manifest.dependencies) == 3
        assert manifest.get_dependency("serde").version == "1.0"
        assert manifest.get_dependency("toml").version == "0.5"
        assert manifest.get_dependency("hyle").version == "0.12"

    def test_missing_dependencies_table(self):
        """A manifest without [dependencies] parses with no dependency mapping."""
        manifest = parse_cargo_toml('[package]\nname = "hello"\nversion = "0.1.0"\n')

        assert manifest.dependencies is None
        assert manifest.get_dependency("serde") is None
        assert manifest.dependency_names() == []
        assert manifest.to_dict() is None

    def test_empty_document(self):
        """Empty text is valid TOML with no dependencies."""
        assert parse_cargo_toml("").dependencies is None

    def test_empty_dependencies_table(self):
        """An empty [dependencies] table is present but has no entries."""
        manifest = parse_cargo_toml("[dependencies]\n")

        assert manifest.dependencies is not None
        assert len(manifest.dependencies) == 0
        assert manifest.to_dict() == {}

    def test_string_dependency(self):
        """name = "X.Y" yields X.Y verbatim."""
        manifest = parse_cargo_toml('[dependencies]\nrand = "^0.8.5"\n')

        assert manifest.get_dependency("rand") == Dependency(version="^0.8.5")

    def test_table_with_version_and_other_fields(self):
        """Extra keys next to version are ignored."""
        manifest = parse_cargo_toml(
            '[dependencies]\n'
            'tokio = { version = "1.28", features = ["full"], default-features = false }\n'
        )

        assert manifest.get_dependency("tokio").version == "1.28"

    def test_standard_table_syntax(self):
        """[dependencies.name] sections are tables too."""
        manifest = parse_cargo_toml(
            '[dependencies.serde]\nversion = "1.0.160"\nfeatures = ["derive"]\n'
        )

        assert manifest.get_dependency("serde").version == "1.0.160"

    def test_table_with_tag_only(self):
        """A git dependency pinned to a tag uses the tag."""
        manifest = parse_cargo_toml(
            '[dependencies]\nhyle = { git = "https://example.org/hyle", tag = "v0.12.1" }\n'
        )

        assert manifest.get_dependency("hyle").version == "v0.12.1"

    def test_version_takes_precedence_over_tag(self):
        """When both fields exist, version wins."""
        manifest = parse_cargo_toml(
            '[dependencies]\nboth = { version = "A", tag = "B" }\n'
        )

        assert manifest.get_dependency("both").version == "A"

    def test_unrecognized_values_are_skipped(self):
        """Numbers, booleans, arrays and datetimes are dropped without error."""
        manifest = parse_cargo_toml(
            '[dependencies]\n'
            'serde = "1.0"\n'
            'answer = 42\n'
            'flag = true\n'
            'ratio = 0.5\n'
            'list = ["a", "b"]\n'
            'released = 1979-05-27T07:32:00Z\n'
        )

        assert manifest.dependency_names() == ["serde"]
        assert manifest.get_dependency("answer") is None
        assert manifest.get_dependency("list") is None
        assert manifest.get_dependency("released") is None

    def test_other_sections_are_ignored(self):
        """Only [dependencies] is read."""
        manifest = parse_cargo_toml(
            '[dependencies]\nserde = "1.0"\n\n'
            '[dev-dependencies]\ntempfile = "3"\n\n'
            '[build-dependencies]\ncc = { path = "../cc" }\n'
        )

        assert manifest.dependency_names() == ["serde"]


class TestParseErrors:
    """Test the failures raised while parsing."""

    def test_missing_version_and_tag(self):
        """A table with neither version nor tag is rejected."""
        with pytest.raises(MissingVersionError) as exc_info:
            parse_cargo_toml('[dependencies]\nlocal = { path = "../local" }\n')

        assert exc_info.value.name == "local"
        assert "local" in str(exc_info.value)

    def test_non_string_version(self):
        """version = 5 is an invalid field."""
        with pytest.raises(InvalidFieldError) as exc_info:
            parse_cargo_toml('[dependencies]\nfoo = { version = 5 }\n')

        assert exc_info.value.name == "foo"
        assert exc_info.value.field == "version"

    def test_non_string_tag(self):
        """A numeric tag is an invalid field."""
        with pytest.raises(InvalidFieldError) as exc_info:
            parse_cargo_toml('[dependencies]\nfoo = { git = "https://example.org/foo", tag = 12 }\n')

        assert exc_info.value.field == "tag"

    def test_invalid_version_is_not_rescued_by_tag(self):
        """A present but invalid version fails even when a valid tag exists."""
        with pytest.raises(InvalidFieldError) as exc_info:
            parse_cargo_toml('[dependencies]\nfoo = { version = 1.5, tag = "v1" }\n')

        assert exc_info.value.field == "version"

    def test_invalid_toml(self):
        """Decoder failures carry the decoder's message."""
        with pytest.raises(MalformedManifestError) as exc_info:
            parse_cargo_toml('[dependencies]\nserde = "1.0"\nserde = "2.0"\n')

        assert exc_info.value.detail
        assert exc_info.value.detail in str(exc_info.value)

    def test_dependencies_not_a_table(self):
        """A top-level dependencies key that is not a table is malformed."""
        with pytest.raises(MalformedManifestError) as exc_info:
            parse_cargo_toml('dependencies = "serde"\n')

        assert "dependencies" in str(exc_info.value)

    def test_non_string_input(self):
        """Bytes are not manifest text."""
        with pytest.raises(MalformedManifestError):
            parse_cargo_toml(b'[dependencies]\nserde = "1.0"\n')

    def test_errors_are_value_errors(self):
        """Callers catching ValueError see every manifest error."""
        assert issubclass(ManifestError, ValueError)
        with pytest.raises(ValueError):
            parse_cargo_toml('[dependencies]\nlocal = { path = "../local" }\n')

    def test_one_bad_entry_fails_whole_parse(self):
        """No partial manifest is returned."""
        with pytest.raises(MissingVersionError):
            parse_cargo_toml(
                '[dependencies]\nserde = "1.0"\nlocal = { path = "../local" }\n'
            )

    def test_first_failure_follows_name_order(self):
        """Entries are checked in sorted name order."""
        with pytest.raises(ManifestError) as exc_info:
            parse_cargo_toml(
                '[dependencies]\nzeta = { path = "z" }\nalpha = { version = 1 }\n'
            )

        assert exc_info.value.name == "alpha"

    def test_error_callback_receives_context(self):
        """The error callback sees the failure and is never registered globally."""
        contexts = []

        with pytest.raises(MissingVersionError):
            parse_cargo_toml(
                '[dependencies]\nlocal = { path = "../local" }\n',
                error_callback=contexts.append,
            )

        assert len(contexts) == 1
        assert contexts[0].category == ErrorCategory.PARSING
        assert contexts[0].details["dependency"] == "local"
        assert isinstance(contexts[0].exception, MissingVersionError)
        assert contexts.append not in get_error_handler().global_callbacks

    def test_error_stats_are_recorded(self):
        """Failures are counted by the error handler."""
        with pytest.raises(MalformedManifestError):
            parse_cargo_toml('dependencies = 1\n')

        assert get_error_handler().get_error_stats() == {"PARSING_ERROR": 1}


class TestCallbackIsolation:
    """Test that per-call error callbacks stay with their own call."""

    def test_concurrent_parse_does_not_leak_into_callback(self):
        """A callback only sees the failure of the parse it was passed to."""
        seen = []
        entered = threading.Event()
        release = threading.Event()
        raised = []

        def hold_callback(context):
            seen.append(context.details.get("dependency"))
            entered.set()
            release.wait(timeout=5)

        def parse_first():
            try:
                parse_cargo_toml(
                    '[dependencies]\nalpha = { path = "../alpha" }\n',
                    error_callback=hold_callback,
                )
            except MissingVersionError as e:
                raised.append(e.name)

        worker = threading.Thread(target=parse_first)
        worker.start()
        try:
            assert entered.wait(timeout=5)
            with pytest.raises(MissingVersionError):
                parse_cargo_toml('[dependencies]\nbeta = { path = "../beta" }\n')
        finally:
            release.set()
            worker.join(timeout=5)

        assert seen == ["alpha"]
        assert raised == ["alpha"]

    def test_global_callback_survives_parse(self):
        """Passing a registered callback per call leaves its registration alone."""
        seen = []
        handler = get_error_handler()
        handler.register_callback(seen.append)

        with pytest.raises(MissingVersionError):
            parse_cargo_toml(
                '[dependencies]\nlocal = { path = "../local" }\n',
                error_callback=seen.append,
            )

        assert seen.append in handler.global_callbacks
        # Once as a global callback, once for the call
        assert len(seen) == 2

    def test_file_callback_is_not_registered(self, temp_dir):
        """File errors reach the per-call callback without touching the handler."""
        seen = []

        with pytest.raises(ManifestError):
            parse_cargo_toml_file(str(temp_dir / "missing.toml"), error_callback=seen.append)

        assert len(seen) == 1
        assert seen[0].category == ErrorCategory.FILESYSTEM
        assert get_error_handler().global_callbacks == []


class TestManifest:
    """Test the parsed manifest object."""

    def test_lookup_of_unknown_name(self, sample_cargo_text):
        """Unknown names are absent, never an error."""
        manifest = parse_cargo_toml(sample_cargo_text)

        assert manifest.get_dependency("missing") is None
        assert get_dependency(manifest, "missing") is None
        assert get_dependency(manifest, "serde").version == "1.0"

    def test_manifest_is_read_only(self, sample_cargo_text):
        """Neither the manifest nor its mapping can be changed."""
        manifest = parse_cargo_toml(sample_cargo_text)

        with pytest.raises(TypeError):
            manifest.dependencies["serde"] = Dependency(version="2.0")
        with pytest.raises(dataclasses.FrozenInstanceError):
            manifest.dependencies = None
        with pytest.raises(dataclasses.FrozenInstanceError):
            manifest.get_dependency("serde").version = "2.0"

    def test_names_and_dict_view(self, sample_cargo_text):
        """dependency_names is sorted and to_dict maps names to versions."""
        manifest = parse_cargo_toml(sample_cargo_text)

        assert manifest.dependency_names() == ["hyle", "serde", "toml"]
        assert manifest.to_dict() == {"serde": "1.0", "toml": "0.5", "hyle": "0.12"}

    def test_from_dependencies_copies_input(self):
        """Later changes to the source dict don't leak into the manifest."""
        source = {"serde": Dependency(version="1.0")}
        manifest = CargoToml.from_dependencies(source)
        source["rand"] = Dependency(version="0.8")

        assert manifest.get_dependency("rand") is None


class TestValueNormalization:
    """Test the classification and normalization helpers directly."""

    @pytest.mark.parametrize(
        "value, kind",
        [
            ("1.0", ValueKind.STRING),
            ({"version": "1.0"}, ValueKind.TABLE),
            (3, ValueKind.OTHER),
            (True, ValueKind.OTHER),
            (["1.0"], ValueKind.OTHER),
        ],
    )
    def test_classify_value(self, value, kind):
        """Raw values map onto string, table or other."""
        assert _classify_value(value) is kind

    def test_normalize_other_returns_none(self):
        """Values that are not understood normalize to None."""
        assert _normalize_dependency("answer", 42) is None

    def test_normalize_table(self):
        """Tables yield their version field."""
        assert _normalize_dependency("toml", {"version": "0.5"}) == Dependency(version="0.5")
