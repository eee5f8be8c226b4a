"""External service wrappers, with the network replaced by mocks."""

import smtplib
from unittest.mock import MagicMock, patch

import pytest
import requests
from cloudinary.exceptions import Error as CloudinaryError

from app.core.exceptions import EmailDeliveryError, GeocodingError, ImageHostError, UnsupportedImage
from app.services.geocoding import Geocoder
from app.services.images import BLOG_FOLDER, PROPERTY_FOLDER, ImageHost, public_id_from_url
from app.services.mailer import Mailer


# ---------------------------------------------------------------------------
# Images
# ---------------------------------------------------------------------------


def test_public_id_from_url():
    url = "https://res.cloudinary.com/demo/image/upload/v1712/property-images/abc123.jpg"
    assert public_id_from_url(url, PROPERTY_FOLDER) == "property-images/abc123"


def test_upload_rejects_unsupported_extension():
    with patch("app.services.images.cloudinary.uploader.upload") as upload:
        with pytest.raises(UnsupportedImage):
            ImageHost().upload(b"GIF89a", "anim.gif", PROPERTY_FOLDER)
    upload.assert_not_called()


def test_upload_returns_secure_url():
    with patch("app.services.images.cloudinary.uploader.upload") as upload:
        upload.return_value = {"secure_url": "https://cdn/x.png", "public_id": "blog_images/x"}
        assert ImageHost().upload(b"data", "Cover.PNG", BLOG_FOLDER) == "https://cdn/x.png"
    assert upload.call_args.kwargs["folder"] == BLOG_FOLDER


def test_upload_failure_is_wrapped():
    with patch("app.services.images.cloudinary.uploader.upload", side_effect=CloudinaryError("down")):
        with pytest.raises(ImageHostError):
            ImageHost().upload(b"data", "a.jpg", PROPERTY_FOLDER)


def test_destroy_reports_failure_without_raising():
    with patch("app.services.images.cloudinary.uploader.destroy", side_effect=CloudinaryError("down")):
        assert ImageHost().destroy("https://cdn/v1/property-images/a.jpg", PROPERTY_FOLDER) is False

    with patch("app.services.images.cloudinary.uploader.destroy", return_value={"result": "ok"}) as destroy:
        assert ImageHost().destroy("https://cdn/v1/property-images/a.jpg", PROPERTY_FOLDER) is True
    destroy.assert_called_once_with("property-images/a")


# ---------------------------------------------------------------------------
# Mail
# ---------------------------------------------------------------------------


def test_build_message_with_html_alternative():
    mailer = Mailer(host="smtp.test", port=25, username="noreply@example.com", password="", use_tls=False)
    msg = mailer.build_message("a@example.com", "Hello", text="plain", html="<b>rich</b>", from_name="Quotes")
    assert msg["To"] == "a@example.com"
    assert msg["From"] == "Quotes <noreply@example.com>"
    assert msg.is_multipart()


def test_send_uses_starttls_and_login():
    mailer = Mailer(host="smtp.test", port=587, username="u@example.com", password="pw", use_tls=True)
    with patch("app.services.mailer.smtplib.SMTP") as smtp_cls:
        smtp = smtp_cls.return_value.__enter__.return_value
        mailer.send("a@example.com", "Hello", text="hi")
    smtp.starttls.assert_called_once()
    smtp.login.assert_called_once_with("u@example.com", "pw")
    smtp.send_message.assert_called_once()


def test_send_failure_is_wrapped():
    mailer = Mailer(host="smtp.test", port=25, username="", password="", use_tls=False)
    with patch("app.services.mailer.smtplib.SMTP", side_effect=smtplib.SMTPConnectError(421, "busy")):
        with pytest.raises(EmailDeliveryError):
            mailer.send("a@example.com", "Hello", text="hi")


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------


def _geocoder(payload=None, error=None):
    session = MagicMock()
    session.headers = {}
    if error is not None:
        session.get.side_effect = error
    else:
        session.get.return_value.json.return_value = payload
    return Geocoder(url="https://geo.test/search", user_agent="tests", timeout=1, session=session), session


def test_geocode_returns_first_match():
    geocoder, session = _geocoder([{"lat": "12.97", "lon": "77.59"}, {"lat": "0", "lon": "0"}])
    assert geocoder.geocode("MG Road, Bangalore") == (12.97, 77.59)
    assert session.get.call_args.kwargs["params"] == {"q": "MG Road, Bangalore", "format": "json", "limit": 1}
    assert session.headers["User-Agent"] == "tests"


def test_geocode_no_match():
    geocoder, _ = _geocoder([])
    assert geocoder.geocode("Nowhere") is None


def test_geocode_blank_query_skips_request():
    geocoder, session = _geocoder([])
    assert geocoder.geocode("  ") is None
    session.get.assert_not_called()


def test_geocode_network_error_is_wrapped():
    geocoder, _ = _geocoder(error=requests.ConnectionError("refused"))
    with pytest.raises(GeocodingError):
        geocoder.geocode("MG Road")
