"""Tests for the attachment resolver."""

from collections.abc import Callable

import pytest

from docmeta import (
    AttachmentResolver,
    AttachmentSite,
    ExceptionRef,
    ShapeError,
    SymbolResolution,
)
from docmeta.parsing import DeclarationScanner
from docmeta.resolver import (
    AttachmentForm,
    FieldStatus,
    MetadataPayload,
    ResolutionStatus,
    build_payload,
)
from docmeta.values import Reference

Resolve = Callable[[str], list[SymbolResolution]]


def _resolution(resolutions: list[SymbolResolution], target: str) -> SymbolResolution:
    """Return the resolution of one symbol target."""
    matches = [r for r in resolutions if r.symbol.target == target]
    assert len(matches) == 1, f"expected one resolution for {target}"
    return matches[0]


class TestDecoratorForm:
    """Test metadata attached with decorators."""

    def test_single_decorator(self, resolve: Resolve) -> None:
        """Test that a decorator call becomes one symbol attachment."""
        source = (
            "from docmeta import doc\n"
            "\n"
            "@doc(description='Look up a user', deprecated=True)\n"
            "def lookup():\n"
            "    '''Find users.'''\n"
        )

        resolution = _resolution(resolve(source), "example.lookup")

        attachment = resolution.symbol_attachment
        assert attachment is not None
        assert attachment.site == AttachmentSite.FUNCTION
        assert attachment.form == AttachmentForm.DECORATOR
        assert attachment.docstring == "Find users."
        assert attachment.location.line == 3
        assert attachment.payload.status == ResolutionStatus.RESOLVED
        assert attachment.payload.to_record().deprecated is True

    def test_no_metadata_gives_empty_resolution(self, resolve: Resolve) -> None:
        """Test that undecorated symbols resolve to nothing."""
        source = "@property\ndef value(self):\n    pass\n\nclass Plain:\n    pass\n"

        resolutions = resolve(source)

        assert all(resolution.is_empty for resolution in resolutions)

    def test_two_decorators_are_ambiguous(self, resolve: Resolve) -> None:
        """Test that two records on one symbol give an issue, not a payload."""
        source = (
            "@doc(description='a')\n"
            "@doc(deprecated=True)\n"
            "class Service:\n"
            "    pass\n"
        )

        resolution = _resolution(resolve(source), "example.Service")

        assert resolution.attachments == ()
        (issue,) = resolution.issues
        assert issue.site == AttachmentSite.CLASS
        assert issue.error.count == 2
        assert issue.error.slot == "example.Service"

    def test_bare_decorator_is_recorded_as_positional(self, resolve: Resolve) -> None:
        """Test that @doc without a call is attached with a positional argument."""
        resolution = _resolution(
            resolve("@doc\ndef f():\n    pass\n"), "example.f"
        )

        attachment = resolution.symbol_attachment
        assert attachment is not None
        assert attachment.payload.positional_count == 1


class TestAnnotatedForm:
    """Test metadata embedded in Annotated annotations."""

    def test_parameter_and_return_slots(self, resolve: Resolve) -> None:
        """Test that each annotated slot gets its own attachment."""
        source = (
            "from typing import Annotated\n"
            "from docmeta import doc\n"
            "\n"
            "def lookup(\n"
            "    user_id: Annotated[int, doc(description='Database id')],\n"
            "    verbose: bool = False,\n"
            ") -> Annotated[str, 'unit', doc(description='Name')]:\n"
            "    pass\n"
        )

        resolution = _resolution(resolve(source), "example.lookup")

        by_target = {a.target: a for a in resolution.attachments}
        assert set(by_target) == {"example.lookup.user_id", "example.lookup.return"}
        parameter = by_target["example.lookup.user_id"]
        assert parameter.site == AttachmentSite.PARAMETER
        assert parameter.form == AttachmentForm.ANNOTATED
        assert parameter.payload.to_record().description == "Database id"
        assert by_target["example.lookup.return"].site == AttachmentSite.RETURN_VALUE

    def test_nested_annotated_is_flattened(self, resolve: Resolve) -> None:
        """Test that inner and outer metadata count toward the same slot."""
        source = (
            "def f(x: Annotated[Annotated[int, doc(description='a')],"
            " doc(description='b')]):\n"
            "    pass\n"
        )

        resolution = _resolution(resolve(source), "example.f")

        (issue,) = resolution.issues
        assert issue.target == "example.f.x"
        assert issue.site == AttachmentSite.PARAMETER

    def test_non_convention_metadata_is_ignored(self, resolve: Resolve) -> None:
        """Test that other Annotated metadata does not attach anything."""
        source = "def f(x: Annotated[int, Field(gt=0)]):\n    pass\n"

        assert _resolution(resolve(source), "example.f").is_empty

    def test_plain_subscript_is_not_annotated(self, resolve: Resolve) -> None:
        """Test that a doc() inside another generic does not attach."""
        source = "def f(x: list[doc(description='a')]):\n    pass\n"

        assert _resolution(resolve(source), "example.f").is_empty


class TestModuleForm:
    """Test module-level metadata calls."""

    def test_module_call(self, resolve: Resolve) -> None:
        """Test that a bare top-level call documents the module."""
        source = (
            "'''Module docstring.'''\n"
            "from docmeta import doc\n"
            "\n"
            "doc(description='Utilities', discouraged=True)\n"
        )

        resolution = _resolution(resolve(source), "example")

        attachment = resolution.symbol_attachment
        assert attachment is not None
        assert attachment.site == AttachmentSite.MODULE
        assert attachment.form == AttachmentForm.MODULE_CALL
        assert attachment.payload.to_record().discouraged is True


class TestRecognisedNames:
    """Test which callees count as the convention."""

    @pytest.mark.parametrize(
        "callee",
        [
            "doc",
            "docmeta.doc",
            "typing_extensions.doc",
            "typing.doc",
            "project.meta.doc",
        ],
    )
    def test_default_names(self, callee: str) -> None:
        """Test shared implementations and final-component matches."""
        assert AttachmentResolver().is_recognised(callee)

    def test_other_names_are_not_recognised(self) -> None:
        """Test that unrelated callees are ignored."""
        resolver = AttachmentResolver()

        assert not resolver.is_recognised("document")
        assert not resolver.is_recognised(None)

    def test_configured_dotted_name_must_match_exactly(self) -> None:
        """Test that dotted recognised names are not final-component matches."""
        resolver = AttachmentResolver(recognised_names=["project.meta.describe"])

        assert resolver.is_recognised("project.meta.describe")
        assert not resolver.is_recognised("other.describe")
        assert resolver.is_recognised("docmeta.doc")

    def test_local_fallback_names(self) -> None:
        """Test that fallback declarations of the module are recognised."""
        resolver = AttachmentResolver(recognised_names=["describe"])

        assert resolver.is_recognised("meta", local_names=["meta"])
        assert not resolver.is_recognised("meta")

    def test_fallback_declaration_in_source(self) -> None:
        """Test the fallback form end to end with a custom name."""
        source = (
            "def meta(*, description=None, deprecated=False, discouraged=False,\n"
            "         raises=None, extra=None):\n"
            "    return lambda target: target\n"
            "\n"
            "@meta(deprecated=True)\n"
            "def old():\n"
            "    pass\n"
        )
        module = DeclarationScanner().scan(source, path="m.py", module="m")

        resolutions = AttachmentResolver().resolve_module(module)

        old = _resolution(resolutions, "m.old")
        assert old.symbol_attachment is not None


class TestBuildPayload:
    """Test static keyword resolution of single calls."""

    def _payload(self, resolve: Resolve, decorator: str) -> MetadataPayload:
        resolution = _resolution(
            resolve(f"{decorator}\ndef f():\n    pass\n"), "example.f"
        )
        attachment = resolution.symbol_attachment
        assert attachment is not None
        return attachment.payload

    def test_raises_keys_become_exception_references(self, resolve: Resolve) -> None:
        """Test that names and attributes in raises are references."""
        payload = self._payload(
            resolve, "@doc(raises={KeyError: 'Missing', errors.Bad: None})"
        )

        record = payload.to_record()
        assert record.raises == {"KeyError": "Missing", "errors.Bad": None}
        assert all(isinstance(key, ExceptionRef) for key, _ in payload.raises_items)

    def test_duplicate_raises_keys_are_kept(self, resolve: Resolve) -> None:
        """Test that duplicate keys are visible and the last one wins."""
        payload = self._payload(
            resolve, "@doc(raises={KeyError: 'first', KeyError: 'second'})"
        )

        assert payload.duplicate_raises_keys() == ["KeyError"]
        assert payload.to_record().raises == {"KeyError": "second"}

    def test_duplicate_keys_survive_unresolved_descriptions(
        self, resolve: Resolve
    ) -> None:
        """Test that keys stay visible when the raises field is dropped."""
        payload = self._payload(
            resolve, "@doc(raises={ValueError: 'a', ValueError: make_message()})"
        )

        assert payload.unresolved == ["raises"]
        assert payload.raises_items is None
        assert payload.duplicate_raises_keys() == ["ValueError"]

    def test_unicode_exception_names(self, resolve: Resolve) -> None:
        """Test that non-ASCII exception names become references."""
        payload = self._payload(resolve, "@doc(raises={Fehlerß: 'bad'})")

        assert payload.raises_items is not None
        ((key, _),) = payload.raises_items
        assert isinstance(key, ExceptionRef)
        assert payload.to_record().raises == {"Fehlerß": "bad"}

    def test_unresolved_fields_are_dropped(self, resolve: Resolve) -> None:
        """Test that runtime-only values are dropped field by field."""
        payload = self._payload(
            resolve, "@doc(description=make_text(), deprecated=True, **more)"
        )

        assert payload.status == ResolutionStatus.PARTIAL
        assert payload.field_status["description"] == FieldStatus.UNRESOLVED
        assert payload.field_status["deprecated"] == FieldStatus.RESOLVED
        assert payload.unresolved == ["description", "**"]
        assert payload.to_record().description is None

    def test_unresolvable_raises_mapping(self, resolve: Resolve) -> None:
        """Test that a raises mapping with computed values is dropped."""
        payload = self._payload(resolve, "@doc(raises={KeyError: reason()})")

        assert payload.unresolved == ["raises"]
        assert payload.raises_items is None

    def test_raises_that_is_not_a_mapping_reaches_the_record(
        self, resolve: Resolve
    ) -> None:
        """Test that shape problems are left for record construction."""
        payload = self._payload(resolve, "@doc(raises=['KeyError'])")

        with pytest.raises(ShapeError) as exc:
            payload.to_record()
        assert exc.value.field == "raises"

    def test_string_raises_key_is_a_shape_error(self, resolve: Resolve) -> None:
        """Test that exception names given as text are rejected."""
        payload = self._payload(resolve, "@doc(raises={'KeyError': 'x'})")

        with pytest.raises(ShapeError):
            payload.to_record()

    def test_non_call_payload(self) -> None:
        """Test that a bare reference gives an empty positional payload."""
        payload = build_payload(Reference("doc"))

        assert payload.positional_count == 1
        assert payload.as_mapping() == {}
