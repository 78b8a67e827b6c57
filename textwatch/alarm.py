"""Keyword matching and HTTP alarm delivery for detected text."""

from __future__ import annotations

import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Iterable, Mapping

log = logging.getLogger(__name__)

DEFAULT_ALARM_URL = "http://32.121.0.166:8018/TOOLS-M-AlarmMessage/send"
DEFAULT_TIMEOUT = 10.0
ALARM_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"
INVALID_RESPONSE_TEXT = "Invalid response format"
REQUEST_FAILED_PREFIX = "Request failed: "


def match_keywords(text: str, keywords: Iterable[str]) -> str:
    """Return the keywords found in the text, case-insensitively, joined by spaces."""
    folded = text.casefold()
    return " ".join(keyword for keyword in keywords if keyword.casefold() in folded)


def build_alarm_payload(
    cam_id: int,
    cam_name: str,
    keywords: str,
    rtsp_name: str,
    now: datetime | None = None,
) -> dict[str, str]:
    """Build the JSON object posted to the alarm endpoint.

    When the stream has a name, it identifies the device and the message
    names the camera id and place; otherwise the camera id is the device.
    """
    moment = (now or datetime.now()).replace(microsecond=0)
    time_str = moment.isoformat()
    if rtsp_name:
        device_id = rtsp_name
        place = cam_name or " "
        message = f"设备 {cam_id} 地点({place}) 检测到异常内容: {keywords} 时间: {time_str}"
    else:
        device_id = str(cam_id)
        message = f"地点 {cam_name} 检测到异常内容: {keywords} 时间 {time_str}"
    return {
        "deviceId": device_id,
        "alarmTime": moment.strftime(ALARM_TIME_FORMAT),
        "alarmMsg": message,
    }


@dataclass(frozen=True)
class AlarmOutcome:
    """What came of one alarm push.

    ``pushed`` is what gets recorded as the push status; a reply of any kind,
    or a failed request, still counts as pushed. ``accepted`` is true only
    when the server answered with code 200.
    """

    pushed: bool
    accepted: bool
    message: str


def _json_string(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _json_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if isinstance(value, float) and not value.is_integer():
        return 0
    return int(value)


def interpret_alarm_response(body: bytes | str | None, error: str | None = None) -> AlarmOutcome:
    """Turn a server reply, or the error that replaced it, into an outcome."""
    if error is not None:
        log.warning("HTTP alarm request failed: %s", error)
        return AlarmOutcome(True, False, REQUEST_FAILED_PREFIX + error)
    try:
        document = json.loads(body or b"")
    except (ValueError, TypeError):
        document = None
    if not isinstance(document, dict):
        return AlarmOutcome(True, False, INVALID_RESPONSE_TEXT)
    code = _json_string(document.get("code"))
    code_int = _json_int(document.get("code"))
    message = _json_string(document.get("message"))
    accepted = code == "200" or code_int == 200
    if accepted:
        log.debug("HTTP alarm sent successfully: %s", message)
    else:
        log.warning("HTTP alarm failed with code: %s %s", code, message)
    return AlarmOutcome(True, accepted, f"{code}: {message}")


class AlarmSender:
    """Posts alarm payloads as JSON to an HTTP endpoint."""

    def __init__(self, url: str = DEFAULT_ALARM_URL, timeout: float = DEFAULT_TIMEOUT):
        parts = urllib.parse.urlsplit(url or "")
        if parts.scheme not in ("http", "https") or not parts.netloc:
            raise ValueError(f"Invalid HTTP alarm URL: {url!r}")
        if timeout <= 0:
            raise ValueError(f"timeout must be positive, got {timeout}")
        self.url = url
        self.timeout = timeout

    def send(self, payload: Mapping[str, Any]) -> AlarmOutcome:
        """Post the payload and interpret whatever comes back."""
        data = json.dumps(dict(payload), ensure_ascii=False, indent=4).encode("utf-8")
        request = urllib.request.Request(
            self.url,
            data=data,
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        log.debug("Alarming HTTP URL: %s", self.url)
        try:
            with urllib.request.urlopen(request, timeout=self.timeout) as response:
                body = response.read()
        except urllib.error.HTTPError as exc:
            return interpret_alarm_response(None, f"HTTP {exc.code} {exc.reason}")
        except urllib.error.URLError as exc:
            return interpret_alarm_response(None, str(exc.reason))
        except OSError as exc:
            return interpret_alarm_response(None, str(exc))
        return interpret_alarm_response(body)