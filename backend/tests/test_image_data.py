"""Tests for base64 image payload decoding and avatar checks."""

import base64

import pytest

from articleflow.exceptions import ValidationError
from articleflow.services.image_data import check_avatar, decode_image_data


class TestDecodeImageData:

    def test_data_url_reports_type(self):
        data, content_type = decode_image_data("data:image/WebP;base64," + base64.b64encode(b"img").decode())
        assert data == b"img"
        assert content_type == "image/webp"

    def test_raw_base64_has_no_type(self):
        assert decode_image_data(base64.b64encode(b"img").decode()) == (b"img", None)

    def test_empty_payload(self):
        with pytest.raises(ValidationError):
            decode_image_data("data:image/png;base64,")

    def test_error_names_the_field(self):
        with pytest.raises(ValidationError) as exc:
            decode_image_data("not base64!", field="avatar")
        assert exc.value.details == {"field": "avatar"}


class TestCheckAvatar:

    @pytest.mark.parametrize("content_type", ["image/jpeg", "image/png", "image/webp", "image/gif"])
    def test_accepted_types(self, content_type):
        assert check_avatar(b"x", content_type, 10) == content_type

    def test_jpg_normalized(self):
        assert check_avatar(b"x", "image/jpg", 10) == "image/jpeg"

    def test_size_limit_is_inclusive(self):
        assert check_avatar(b"12345", "image/png", 5) == "image/png"
        with pytest.raises(ValidationError, match="File too large"):
            check_avatar(b"123456", "image/png", 5)

    def test_missing_type(self):
        with pytest.raises(ValidationError, match="Invalid file type"):
            check_avatar(b"x", None, 10)
