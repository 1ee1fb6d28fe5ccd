"""
JSON renderer wrapping successful payloads into the API envelope.
"""

from rest_framework.renderers import JSONRenderer


class EnvelopeJSONRenderer(JSONRenderer):
    """
    Renders {"success": true, "data": ...} for 2xx responses.

    Error bodies are already shaped by core.exceptions.envelope_exception_handler
    and are passed through untouched. `response.data` stays unwrapped, so views
    and tests work with the plain payload.
    """

    def render(self, data, accepted_media_type=None, renderer_context=None):
        renderer_context = renderer_context or {}
        response = renderer_context.get("response")

        if response is not None and response.status_code < 400:
            if response.status_code == 204:
                return b""
            if not (isinstance(data, dict) and "success" in data):
                data = {"success": True, "data": data}

        return super().render(data, accepted_media_type, renderer_context)
