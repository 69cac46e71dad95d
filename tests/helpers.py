import base64
from io import BytesIO

from PIL import Image


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, text=None):
        self.status_code = status_code
        self._json = json_data
        self.text = text if text is not None else ("" if json_data is None else str(json_data))

    def json(self):
        if self._json is None:
            raise ValueError("no JSON")
        return self._json


class Upstream:
    """Records outgoing calls and replays a canned response."""

    def __init__(self):
        self.calls = []
        self.response = FakeResponse(200, {"candidates": []})
        self.error = None

    def __call__(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error is not None:
            raise self.error
        return self.response


def image_bytes(size=(40, 20), color=(200, 30, 30), fmt="JPEG"):
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format=fmt)
    return buf.getvalue()


def image_b64(size=(40, 20), color=(200, 30, 30), fmt="JPEG"):
    return base64.b64encode(image_bytes(size, color, fmt)).decode("utf-8")


def inline_response(mime_type="image/png", data="aW1hZ2U=", finish_reason="STOP"):
    return {
        "candidates": [
            {
                "content": {
                    "role": "model",
                    "parts": [{"text": "Here you go"}, {"inlineData": {"mimeType": mime_type, "data": data}}],
                },
                "finishReason": finish_reason,
            }
        ]
    }
