"""Turn tool arguments into ``generateContent`` requests and collect the answers.

Every tool validates all of its inputs before touching the network or the
filesystem: image sources first, then free-text prompts, then the output path,
then the system prompt. Images are fetched one after another; the first
failure aborts the call.
"""
from __future__ import annotations

from typing import Sequence

from .gemini_client import DEFAULT_ANALYSIS_MODEL, DEFAULT_IMAGE_MODEL, GeminiClient
from .image_source import ImageFetcher
from .models import (
    AnalyzeImageInput,
    ComposeImagesInput,
    EditImageInput,
    GenerateImageInput,
    InpaintImageInput,
    RefineImageInput,
    StyleTransferInput,
)
from .parts import ContentPart, InlineImagePart, TextPart
from .responses import decode_image_data, extract_image_data, extract_text, save_image
from .validation import ImageSourceValidator, OutputPathValidator, PromptValidator, Validator

DEFAULT_ANALYSIS_PROMPT = "Caption this image."
DEFAULT_STYLE_PROMPT = "Apply the style of the second image to the first image"


def _or_default(prompt: str | None, default: str) -> str:
    # Blank prompts count as missing.
    if prompt is None or not prompt.strip():
        return default
    return prompt


def inpaint_prompt(user_prompt: str, mask_description: str | None) -> str:
    if mask_description is None:
        return user_prompt
    return f"Focus on the region containing '{mask_description}'. {user_prompt}"


def history_parts(history: Sequence[str]) -> list[TextPart]:
    return [
        TextPart(f"Previous iteration {i}: {text}")
        for i, text in enumerate(history, start=1)
    ]


class ImageToolService:
    def __init__(
        self,
        client: GeminiClient,
        fetcher: ImageFetcher | None = None,
        *,
        analysis_model: str = DEFAULT_ANALYSIS_MODEL,
        image_model: str = DEFAULT_IMAGE_MODEL,
    ) -> None:
        self.client = client
        self.fetcher = fetcher or ImageFetcher()
        self.analysis_model = analysis_model
        self.image_model = image_model
        self._sources: Validator = ImageSourceValidator()
        self._prompts: Validator = PromptValidator()
        self._outputs: Validator = OutputPathValidator()

    # -- shared plumbing ---------------------------------------------------

    def _check_system_prompt(self, system_prompt: str | None) -> None:
        if system_prompt is not None:
            self._prompts.validate(system_prompt)

    @staticmethod
    def _system_parts(system_prompt: str | None) -> list[ContentPart]:
        return [TextPart(system_prompt)] if system_prompt is not None else []

    async def _image_part(self, source: str) -> InlineImagePart:
        mime_type, data = await self.fetcher.fetch_and_encode(source)
        return InlineImagePart(mime_type=mime_type, data=data)

    async def _send_for_text(self, parts: list[ContentPart]) -> str:
        payload = await self.client.generate_content(parts, model=self.analysis_model)
        return extract_text(payload)

    async def _send_for_image(self, parts: list[ContentPart], output_path: str) -> str:
        payload = await self.client.generate_content(parts, model=self.image_model)
        image_bytes = decode_image_data(extract_image_data(payload))
        return await save_image(output_path, image_bytes)

    # -- tools -------------------------------------------------------------

    async def analyze_image(self, request: AnalyzeImageInput) -> str:
        self._sources.validate(request.image_source)
        user_prompt = _or_default(request.user_prompt, DEFAULT_ANALYSIS_PROMPT)
        self._prompts.validate(user_prompt)
        self._check_system_prompt(request.system_prompt)

        parts = self._system_parts(request.system_prompt)
        parts.append(await self._image_part(request.image_source))
        parts.append(TextPart(user_prompt))
        return await self._send_for_text(parts)

    async def generate_image(self, request: GenerateImageInput) -> str:
        self._prompts.validate(request.user_prompt)
        self._outputs.validate(request.output_path)
        self._check_system_prompt(request.system_prompt)

        parts = self._system_parts(request.system_prompt)
        parts.append(TextPart(request.user_prompt))
        return await self._send_for_image(parts, request.output_path)

    async def edit_image(self, request: EditImageInput) -> str:
        self._sources.validate(request.image_source)
        self._prompts.validate(request.user_prompt)
        self._outputs.validate(request.output_path)
        self._check_system_prompt(request.system_prompt)

        parts = self._system_parts(request.system_prompt)
        parts.append(TextPart(request.user_prompt))
        parts.append(await self._image_part(request.image_source))
        return await self._send_for_image(parts, request.output_path)

    async def inpaint_image(self, request: InpaintImageInput) -> str:
        self._sources.validate(request.image_source)
        self._prompts.validate(request.user_prompt)
        if request.mask_description is not None:
            self._prompts.validate(request.mask_description)
        self._outputs.validate(request.output_path)
        self._check_system_prompt(request.system_prompt)

        parts = self._system_parts(request.system_prompt)
        parts.append(TextPart(inpaint_prompt(request.user_prompt, request.mask_description)))
        parts.append(await self._image_part(request.image_source))
        return await self._send_for_image(parts, request.output_path)

    async def style_transfer(self, request: StyleTransferInput) -> str:
        self._sources.validate(request.source_image)
        self._sources.validate(request.style_image)
        prompt = _or_default(request.prompt, DEFAULT_STYLE_PROMPT)
        self._prompts.validate(prompt)
        self._outputs.validate(request.output_path)
        self._check_system_prompt(request.system_prompt)

        parts = self._system_parts(request.system_prompt)
        parts.append(await self._image_part(request.source_image))
        parts.append(await self._image_part(request.style_image))
        parts.append(TextPart(prompt))
        return await self._send_for_image(parts, request.output_path)

    async def compose_images(self, request: ComposeImagesInput) -> str:
        self._sources.validate(request.primary_image)
        for source in request.secondary_images:
            self._sources.validate(source)
        self._prompts.validate(request.user_prompt)
        self._outputs.validate(request.output_path)
        self._check_system_prompt(request.system_prompt)

        parts = self._system_parts(request.system_prompt)
        parts.append(await self._image_part(request.primary_image))
        for source in request.secondary_images:
            parts.append(await self._image_part(source))
        parts.append(TextPart(request.user_prompt))
        return await self._send_for_image(parts, request.output_path)

    async def refine_image(self, request: RefineImageInput) -> str:
        self._sources.validate(request.image_source)
        self._prompts.validate(request.user_prompt)
        for entry in request.conversation_history:
            self._prompts.validate(entry)
        self._outputs.validate(request.output_path)
        self._check_system_prompt(request.system_prompt)

        parts = self._system_parts(request.system_prompt)
        parts.extend(history_parts(request.conversation_history))
        parts.append(TextPart(request.user_prompt))
        parts.append(await self._image_part(request.image_source))
        return await self._send_for_image(parts, request.output_path)
