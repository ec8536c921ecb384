"""
Tests for the data API result structure.
"""

from blindpaste.core.response import ResponseBuilder


class TestResponseBuilder:
    """Test success and failure results."""

    def test_success(self) -> None:
        builder = ResponseBuilder("https://paste.example.com/")

        assert builder.success("0123456789abcdef") == {
            "status": 0,
            "id": "0123456789abcdef",
            "url": "https://paste.example.com/?0123456789abcdef",
        }

    def test_success_with_extra(self) -> None:
        builder = ResponseBuilder("/")

        result = builder.success("0123456789abcdef", {"deletetoken": "abc"})

        assert result["deletetoken"] == "abc"
        assert result["url"] == "/?0123456789abcdef"

    def test_extra_never_overrides(self) -> None:
        """Test extras cannot replace status, id or url."""

        builder = ResponseBuilder("/")

        result = builder.success(
            "0123456789abcdef",
            {"status": 1, "id": "other", "url": "https://evil.example.net/"},
        )

        assert result == {"status": 0, "id": "0123456789abcdef", "url": "/?0123456789abcdef"}

    def test_failure(self) -> None:
        builder = ResponseBuilder("/")

        assert builder.failure("Invalid data.") == {"status": 1, "message": "Invalid data."}
