"""Argument models for the exposed tools; their JSON schemas feed ``tools/list``."""
from __future__ import annotations

from pydantic import BaseModel, Field

_SOURCE_HELP = "Image source: an HTTPS URL or a local file path"
_SYSTEM_HELP = "Optional system prompt to guide the model"
_OUTPUT_HELP = "Output file path where the resulting image will be saved"


class AnalyzeImageInput(BaseModel):
    image_source: str = Field(description=_SOURCE_HELP)
    system_prompt: str | None = Field(default=None, description=_SYSTEM_HELP)
    user_prompt: str | None = Field(
        default=None,
        description='User prompt for analysis. Defaults to "Caption this image."',
    )


class GenerateImageInput(BaseModel):
    system_prompt: str | None = Field(default=None, description=_SYSTEM_HELP)
    user_prompt: str = Field(description="User prompt describing the image to generate")
    output_path: str = Field(description=_OUTPUT_HELP)


class EditImageInput(BaseModel):
    image_source: str = Field(description=_SOURCE_HELP)
    system_prompt: str | None = Field(default=None, description=_SYSTEM_HELP)
    user_prompt: str = Field(description="User prompt describing the desired edits")
    output_path: str = Field(description=_OUTPUT_HELP)


class InpaintImageInput(BaseModel):
    image_source: str = Field(description=_SOURCE_HELP)
    system_prompt: str | None = Field(default=None, description=_SYSTEM_HELP)
    user_prompt: str = Field(description="What to put in, or change about, the selected region")
    mask_description: str | None = Field(
        default=None,
        description="Semantic description of the region to modify, e.g. 'the sky'",
    )
    output_path: str = Field(description=_OUTPUT_HELP)


class StyleTransferInput(BaseModel):
    source_image: str = Field(description="Image whose content is kept (HTTPS URL or local path)")
    style_image: str = Field(description="Image whose style is applied (HTTPS URL or local path)")
    system_prompt: str | None = Field(default=None, description=_SYSTEM_HELP)
    prompt: str | None = Field(
        default=None,
        description="Optional instructions. Defaults to applying the style of the second image to the first",
    )
    output_path: str = Field(description=_OUTPUT_HELP)


class ComposeImagesInput(BaseModel):
    primary_image: str = Field(description="Base image of the composition (HTTPS URL or local path)")
    secondary_images: list[str] = Field(
        default_factory=list,
        description="Additional images to compose into the primary image",
    )
    system_prompt: str | None = Field(default=None, description=_SYSTEM_HELP)
    user_prompt: str = Field(description="How the images should be combined")
    output_path: str = Field(description=_OUTPUT_HELP)


class RefineImageInput(BaseModel):
    image_source: str = Field(description="Image to refine (HTTPS URL or local path)")
    system_prompt: str | None = Field(default=None, description=_SYSTEM_HELP)
    user_prompt: str = Field(description="Refinement instructions for this iteration")
    conversation_history: list[str] = Field(
        default_factory=list,
        description="Notes from earlier iterations, oldest first",
    )
    output_path: str = Field(description=_OUTPUT_HELP)
