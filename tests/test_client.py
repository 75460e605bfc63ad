"""Tests for the HTTP image prober and the oEmbed service."""

import io
import unittest
from unittest.mock import Mock

import requests
from PIL import Image

from postenrich.client import (
    EmbedError,
    EmbedRateLimited,
    HttpImageProber,
    OEmbedService,
    ProbeError,
)
from postenrich.domain import ImageSize

VIDEO = "https://www.youtube.com/watch?v=9bZkp7q19f0"


def _png_bytes(width, height):
    buf = io.BytesIO()
    Image.new("RGB", (width, height)).save(buf, "PNG")
    return buf.getvalue()


def _streamed(data, status=200, chunk=64):
    resp = Mock()
    resp.status_code = status
    resp.iter_content.side_effect = lambda chunk_size: iter(
        [data[i : i + chunk] for i in range(0, len(data), chunk)]
    )
    return resp


def _json_response(payload, status=200, headers=None):
    resp = Mock()
    resp.status_code = status
    resp.headers = headers or {}
    resp.json.return_value = payload
    resp.text = str(payload)
    return resp


class HttpImageProberTest(unittest.TestCase):
    def setUp(self):
        self.session = Mock()
        self.prober = HttpImageProber(self.session, timeout=3.0)

    def test_reads_the_size_from_the_image_header(self):
        resp = _streamed(_png_bytes(123, 456))
        self.session.get.return_value = resp
        size = self.prober.probe_size("http://a.com/x.png")
        self.assertEqual(size, ImageSize(123, 456))
        self.session.get.assert_called_once_with(
            "http://a.com/x.png", stream=True, timeout=3.0
        )
        resp.close.assert_called_once()

    def test_non_image_content_has_no_size(self):
        self.session.get.return_value = _streamed(b"<html>not an image</html>")
        self.assertIsNone(self.prober.probe_size("http://a.com/x.png"))

    def test_http_errors_raise(self):
        resp = _streamed(b"", status=404)
        self.session.get.return_value = resp
        with self.assertRaises(ProbeError):
            self.prober.probe_size("http://a.com/missing.png")
        resp.close.assert_called_once()

    def test_connection_errors_raise(self):
        self.session.get.side_effect = requests.ConnectionError("refused")
        with self.assertRaises(ProbeError):
            self.prober.probe_size("http://a.com/x.png")


class OEmbedServiceTest(unittest.TestCase):
    def setUp(self):
        self.session = Mock()
        self.session.get.return_value = _json_response(
            {"type": "video", "version": "1.0", "html": "<iframe></iframe>"}
        )
        self.service = OEmbedService(self.session)

    def test_returns_provider_html(self):
        self.assertEqual(self.service.embed(VIDEO, 1, False), "<iframe></iframe>")
        self.session.get.assert_called_once_with(
            "https://www.youtube.com/oembed",
            params={"url": VIDEO, "format": "json"},
            timeout=10.0,
        )

    def test_results_are_cached(self):
        self.service.embed(VIDEO, 1, False)
        self.service.embed(VIDEO, 2, False)
        self.assertEqual(self.session.get.call_count, 1)

    def test_invalidate_refetches(self):
        self.service.embed(VIDEO, 1, False)
        self.service.embed(VIDEO, 1, True)
        self.assertEqual(self.session.get.call_count, 2)

    def test_unknown_provider(self):
        self.assertIsNone(self.service.embed("http://example.com/v/1", 1, False))
        self.session.get.assert_not_called()

    def test_rate_limit(self):
        self.session.get.return_value = _json_response(
            {}, status=429, headers={"Retry-After": "30"}
        )
        with self.assertRaises(EmbedRateLimited) as ctx:
            self.service.embed(VIDEO, 1, False)
        self.assertEqual(ctx.exception.retry_after, 30.0)

    def test_server_error(self):
        self.session.get.return_value = _json_response({}, status=500)
        with self.assertRaises(EmbedError):
            self.service.embed(VIDEO, 1, False)

    def test_invalid_payload(self):
        self.session.get.return_value = _json_response({"html": "<b>no type</b>"})
        with self.assertRaises(EmbedError):
            self.service.embed(VIDEO, 1, False)

        resp = _json_response(None)
        resp.json.side_effect = ValueError("Expecting value")
        self.session.get.return_value = resp
        with self.assertRaises(EmbedError):
            self.service.embed(VIDEO, 1, True)

    def test_photo_responses_become_images(self):
        self.session.get.return_value = _json_response(
            {
                "type": "photo",
                "url": "http://img.com/p.jpg",
                "title": "A photo",
                "width": 300,
                "height": 200,
            }
        )
        markup = self.service.embed("https://vimeo.com/76979871", 1, False)
        self.assertTrue(markup.startswith("<img"))
        self.assertIn('src="http://img.com/p.jpg"', markup)
        self.assertIn('width="300"', markup)
        self.assertIn('alt="A photo"', markup)


if __name__ == "__main__":
    unittest.main()
