"""
Tests for the low-level request helper: error mapping and response buffering.
"""

from __future__ import annotations

import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock

import aiohttp

from schedule_uploader.errors import RequestError, RequestTimeout
from schedule_uploader.requests import ApiResponse, ApiResponseError, _process_response, make_request


def make_raw_response(status=200, headers=None, text=""):
    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.text = AsyncMock(return_value=text)
    return response


class TestMakeRequest(unittest.IsolatedAsyncioTestCase):

    async def test_timeout_becomes_request_timeout(self):
        session = MagicMock()
        session.request = MagicMock(side_effect=asyncio.TimeoutError())
        with self.assertRaises(RequestTimeout):
            await make_request(session, "POST", "https://api.example.com/upload-schedule")

    async def test_request_timeout_is_builtin_timeout(self):
        self.assertTrue(issubclass(RequestTimeout, TimeoutError))

    async def test_client_error_becomes_request_error(self):
        session = MagicMock()
        session.request = MagicMock(side_effect=aiohttp.ClientConnectionError("refused"))
        with self.assertRaises(RequestError):
            await make_request(session, "GET", "https://api.example.com/")

    async def test_unsupported_method(self):
        with self.assertRaises(ValueError):
            await make_request(MagicMock(), "DELETE", "https://api.example.com/")


class TestProcessResponse(unittest.IsolatedAsyncioTestCase):

    async def test_success_body_is_buffered(self):
        raw = make_raw_response(201, {"Content-Type": "application/json"}, '{"stored": true}')
        response = await _process_response(raw, "https://api.example.com/")
        self.assertEqual(response.text, '{"stored": true}')
        self.assertTrue(response.ok)

    async def test_headers_are_case_insensitive(self):
        raw = make_raw_response(200, {"Set-Cookie": "sid=1; Path=/"})
        response = await _process_response(raw, "https://api.example.com/login")
        self.assertEqual(response.header("set-cookie"), ["sid=1; Path=/"])
        self.assertEqual(response.header("SET-COOKIE"), ["sid=1; Path=/"])

    async def test_forbidden_is_not_ok(self):
        raw = make_raw_response(403, {"Content-Type": "text/html"}, "<h1>Forbidden</h1>")
        response = await _process_response(raw, "https://api.example.com/")
        self.assertFalse(response.ok)
        self.assertEqual(response.text, "<h1>Forbidden</h1>")


class TestApiResponseError(unittest.TestCase):

    def test_carries_status(self):
        err = ApiResponseError(ApiResponse(status=500, headers={}, text="boom"))
        self.assertEqual(err.status, 500)
        self.assertIn("500", str(err))
