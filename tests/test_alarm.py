import json
import socket
import threading
from datetime import datetime
from http.server import BaseHTTPRequestHandler, HTTPServer

import pytest

from textwatch.alarm import (
    AlarmSender,
    build_alarm_payload,
    interpret_alarm_response,
    match_keywords,
)

NOW = datetime(2024, 1, 2, 3, 4, 5, 678000)


def test_match_keywords_is_case_insensitive_and_ordered():
    assert match_keywords("Fire at the GATE", ["gate", "smoke", "fire"]) == "gate fire"


def test_match_keywords_none_found():
    assert match_keywords("all quiet", ["fire", "smoke"]) == ""


def test_match_keywords_empty_keyword_list():
    assert match_keywords("anything", []) == ""


def test_payload_without_stream_name_uses_cam_id():
    payload = build_alarm_payload(7, "Gate", "fire", "", NOW)
    assert payload["deviceId"] == "7"
    assert payload["alarmTime"] == "2024-01-02 03:04:05"
    assert payload["alarmMsg"].startswith("地点 Gate 检测到异常内容: fire")
    assert payload["alarmMsg"].endswith("2024-01-02T03:04:05")


def test_payload_with_stream_name_uses_name_as_device():
    payload = build_alarm_payload(7, "Gate", "fire", "north", NOW)
    assert payload["deviceId"] == "north"
    assert payload["alarmMsg"].startswith("设备 7 地点(Gate)")
    assert "fire" in payload["alarmMsg"]


def test_payload_with_stream_name_and_no_place():
    payload = build_alarm_payload(2, "", "smoke", "north", NOW)
    assert "地点( )" in payload["alarmMsg"]


def test_payload_keys():
    payload = build_alarm_payload(1, "a", "b", "", NOW)
    assert set(payload) == {"deviceId", "alarmTime", "alarmMsg"}


def test_response_string_code_200_is_accepted():
    outcome = interpret_alarm_response(b'{"code": "200", "message": "ok"}')
    assert outcome.accepted is True
    assert outcome.pushed is True
    assert outcome.message == "200: ok"


def test_response_numeric_code_200_is_accepted():
    outcome = interpret_alarm_response('{"code": 200, "message": "ok"}')
    assert outcome.accepted is True
    assert outcome.message == ": ok"


def test_response_other_code_is_pushed_but_not_accepted():
    outcome = interpret_alarm_response(b'{"code": "500", "message": "bad"}')
    assert outcome.accepted is False
    assert outcome.pushed is True
    assert outcome.message == "500: bad"


@pytest.mark.parametrize("body", [b"not json", b"[1, 2]", b"", None])
def test_response_not_an_object(body):
    outcome = interpret_alarm_response(body)
    assert outcome.accepted is False
    assert outcome.message == "Invalid response format"


def test_response_error():
    outcome = interpret_alarm_response(None, "timeout")
    assert outcome.pushed is True
    assert outcome.accepted is False
    assert outcome.message == "Request failed: timeout"


@pytest.mark.parametrize("url", ["", "not a url", "ftp://example.com/x", "http://"])
def test_sender_rejects_invalid_url(url):
    with pytest.raises(ValueError):
        AlarmSender(url)


def test_sender_rejects_bad_timeout():
    with pytest.raises(ValueError):
        AlarmSender("http://localhost:1/x", timeout=0)


def _serve(status, body):
    received = {}

    class Handler(BaseHTTPRequestHandler):
        def do_POST(self):
            length = int(self.headers.get("Content-Length", 0))
            received["body"] = self.rfile.read(length)
            received["content_type"] = self.headers.get("Content-Type")
            received["path"] = self.path
            self.send_response(status)
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)

        def log_message(self, *args):
            pass

    server = HTTPServer(("127.0.0.1", 0), Handler)
    thread = threading.Thread(target=server.handle_request, daemon=True)
    thread.start()
    return server, thread, received


def test_sender_posts_json_and_reads_reply():
    server, thread, received = _serve(200, b'{"code": "200", "message": "ok"}')
    try:
        sender = AlarmSender(f"http://127.0.0.1:{server.server_port}/send", timeout=5)
        payload = build_alarm_payload(4, "Dock", "fire", "", NOW)
        outcome = sender.send(payload)
        thread.join(5)
    finally:
        server.server_close()
    assert outcome.accepted is True
    assert received["path"] == "/send"
    assert received["content_type"] == "application/json"
    assert json.loads(received["body"].decode("utf-8")) == payload


def test_sender_http_error_status():
    server, thread, _ = _serve(500, b"oops")
    try:
        sender = AlarmSender(f"http://127.0.0.1:{server.server_port}/send", timeout=5)
        outcome = sender.send({"deviceId": "1"})
        thread.join(5)
    finally:
        server.server_close()
    assert outcome.accepted is False
    assert outcome.message.startswith("Request failed: ")
    assert "500" in outcome.message


def test_sender_connection_refused():
    with socket.socket() as sock:
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
    outcome = AlarmSender(f"http://127.0.0.1:{port}/send", timeout=2).send({"deviceId": "1"})
    assert outcome.pushed is True
    assert outcome.accepted is False
    assert outcome.message.startswith("Request failed: ")