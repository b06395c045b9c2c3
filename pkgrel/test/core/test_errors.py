"""Tests for pkgrel.core.errors module."""

from pkgrel.core.errors import ErrorCode


class TestErrorCode:
    def test_values_are_stable(self) -> None:
        assert ErrorCode.OK == 0
        assert ErrorCode.USER_ERROR == 1
        assert ErrorCode.ENV_ERROR == 2
        assert ErrorCode.GATE_ERROR == 3
        assert ErrorCode.NETWORK_ERROR == 4
        assert ErrorCode.IO_ERROR == 5
        assert ErrorCode.ALREADY_PUBLISHED == 6

    def test_success_flags(self) -> None:
        assert ErrorCode.OK.is_success
        assert not ErrorCode.OK.is_error
        assert ErrorCode.GATE_ERROR.is_error

    def test_str(self) -> None:
        assert str(ErrorCode.ALREADY_PUBLISHED) == "already published"
