from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Literal, Union

import requests
from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as SchemaError

from maskpaint.config import settings
from maskpaint.errors import ServiceError
from maskpaint.generation.assembler import AssistRequest
from maskpaint.generation.fal import extract_error_message


logger = logging.getLogger(__name__)

_TEXT_CONTENT_TYPES = {"text", "input_text", "output_text"}
_IMAGE_CONTENT_TYPES = {"output_image", "image"}


def as_image_ref(image_url: str | None, image: str | None) -> str | None:
    """Prefer a URL; otherwise turn inline image data into a data URL."""
    if image_url:
        return image_url
    if not image:
        return None
    if image.startswith("data:image/"):
        return image
    return f"data:image/png;base64,{image}"


class _Lenient(BaseModel):
    model_config = ConfigDict(extra="allow")


class ImagePayload(_Lenient):
    image_url: str | None = None
    image: str | None = None

    def ref(self) -> str | None:
        return as_image_ref(self.image_url, self.image)


class MessageContent(_Lenient):
    type: str = ""
    text: str | None = None
    image_url: str | dict[str, Any] | None = None
    image: str | None = None

    def image_ref(self) -> str | None:
        url = self.image_url
        if isinstance(url, dict):
            url = url.get("url") if isinstance(url.get("url"), str) else None
        return as_image_ref(url, self.image)


class MessageOutput(_Lenient):
    type: Literal["message"]
    content: list[Any] = []

    def content_items(self) -> list[MessageContent]:
        """Content items that validate; anything else is skipped."""
        parsed: list[MessageContent] = []
        for raw in self.content:
            if not isinstance(raw, dict):
                continue
            try:
                parsed.append(MessageContent.model_validate(raw))
            except SchemaError:
                logger.debug("skipping malformed message content of type %r", raw.get("type"))
        return parsed

    def texts(self) -> list[str]:
        return [c.text for c in self.content_items() if c.type in _TEXT_CONTENT_TYPES and c.text]

    def images(self) -> list[str]:
        refs = (c.image_ref() for c in self.content_items() if c.type in _IMAGE_CONTENT_TYPES)
        return [ref for ref in refs if ref]


class ImageGenerationCallOutput(_Lenient):
    type: Literal["image_generation_call"]
    output: ImagePayload | None = None
    result: str | None = None

    def images(self) -> list[str]:
        ref = self.output.ref() if self.output is not None else None
        if ref is None:
            ref = as_image_ref(None, self.result)
        return [ref] if ref else []


class ToolCallResultOutput(_Lenient):
    type: Literal["tool_call_result"]
    content: ImagePayload | None = None

    def images(self) -> list[str]:
        ref = self.content.ref() if self.content is not None else None
        return [ref] if ref else []


class UnrecognizedOutput(_Lenient):
    type: str | None = None


OutputItem = Union[MessageOutput, ImageGenerationCallOutput, ToolCallResultOutput, UnrecognizedOutput]

_OUTPUT_MODELS: dict[str, type[BaseModel]] = {
    "message": MessageOutput,
    "image_generation_call": ImageGenerationCallOutput,
    "tool_call_result": ToolCallResultOutput,
}


def parse_output_item(raw: Any) -> OutputItem:
    if not isinstance(raw, dict):
        return UnrecognizedOutput()
    tag = raw.get("type")
    if not isinstance(tag, str):
        tag = None
    model = _OUTPUT_MODELS.get(tag) if tag else None
    if model is not None:
        try:
            return model.model_validate(raw)
        except SchemaError:
            logger.debug("output item of type %r did not match its schema", tag)
    return UnrecognizedOutput.model_validate({**raw, "type": tag})


@dataclass(slots=True)
class AssistResult:
    text: str
    images: list[str] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)


def extract_assist_result(data: dict[str, Any]) -> AssistResult:
    texts: list[str] = []
    images: list[str] = []
    for item in map(parse_output_item, data.get("output") or []):
        if isinstance(item, MessageOutput):
            texts.extend(item.texts())
            images.extend(item.images())
        elif isinstance(item, (ImageGenerationCallOutput, ToolCallResultOutput)):
            images.extend(item.images())
        else:
            logger.debug("ignoring unrecognized output item %r", item.type)
    return AssistResult(text=" ".join(texts).strip(), images=images, raw=data)


def build_responses_payload(request: AssistRequest, model: str) -> dict[str, Any]:
    messages: list[dict[str, Any]] = []
    if request.developer_instruction:
        messages.append(
            {
                "role": "developer",
                "content": [{"type": "input_text", "text": request.developer_instruction}],
            }
        )

    user_content: list[dict[str, Any]] = [
        {"type": "input_text", "text": request.prompt_text},
        {"type": "input_image", "image_url": request.source_image_ref},
    ]
    if request.saved_mask_ref:
        user_content.append({"type": "input_image", "image_url": request.saved_mask_ref})
    messages.append({"role": "user", "content": user_content})

    return {
        "model": model,
        "input": messages,
        "tools": [{"type": "image_generation"}],
    }


class OpenAIAssistAdapter:
    def __init__(
        self,
        api_key: str | None = None,
        endpoint: str | None = None,
        model: str | None = None,
        *,
        timeout: float | None = None,
        http: requests.Session | None = None,
    ) -> None:
        self._api_key = api_key if api_key is not None else settings.openai_api_key
        self._endpoint = endpoint or settings.openai_responses_url
        self._model = model or settings.openai_model
        self._timeout = timeout if timeout is not None else settings.assist_timeout_seconds
        self._http = http or requests.Session()

    def submit(self, request: AssistRequest) -> AssistResult:
        if not self._api_key:
            raise ServiceError("OPENAI_API_KEY environment variable not configured")

        payload = build_responses_payload(request, self._model)
        logger.info(
            "submitting assist request to %s (model=%s, saved_mask=%s)",
            self._endpoint,
            self._model,
            bool(request.saved_mask_ref),
        )
        try:
            response = self._http.post(
                self._endpoint,
                json=payload,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise ServiceError(f"assist request failed: {exc}") from exc

        if not response.ok:
            message = extract_error_message(response, "multimodal service")
            logger.warning("multimodal service returned %s: %s", response.status_code, message)
            raise ServiceError(message, status_code=response.status_code)

        try:
            data = response.json()
        except ValueError as exc:
            raise ServiceError("multimodal service returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise ServiceError("multimodal service returned an unexpected response")

        result = extract_assist_result(data)
        logger.info("assist response: %d chars of text, %d images", len(result.text), len(result.images))
        return result


@lru_cache(maxsize=1)
def create_default_assist_adapter() -> OpenAIAssistAdapter:
    return OpenAIAssistAdapter()
