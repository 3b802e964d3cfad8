"""
Stage Requests
==============

Descriptors for every remote operation the pipeline issues, and the
instruction text each one sends to the image model.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Dict, Any, Tuple

from ..api.base import Artifact, ImageRequest, VideoRequest
from ..core.config import ImageConfig, VideoConfig
from ..core.exceptions import MissingInputError
from ..core.security import sanitize_prompt


# Row-major quadrant labels of the 3x3 storyboard
CELL_POSITIONS = (
    "top-left",
    "top-center",
    "top-right",
    "middle-left",
    "center",
    "middle-right",
    "bottom-left",
    "bottom-center",
    "bottom-right",
)

DEFAULT_MOTION_PROMPT = "Cinematic motion"


class OperationKind(Enum):
    """Kinds of remote operation."""

    COMBINE = "combine"
    REFINE = "refine"
    STORYBOARD_GRID = "storyboard_grid"
    EXTRACT_CELL = "extract_cell"
    UPSCALE = "upscale"
    GENERATE_VIDEO = "generate_video"


@dataclass
class CustomizationOptions:
    """Scene styling applied by the refine stage."""

    background: str = "Luxury modern minimalist penthouse living room with warm ambient lighting"
    background_ref: str = ""
    lighting_ref: str = "Cinematic Warm"
    neon_text: str = "LUXE"
    font_style: str = "Cursive"


@dataclass(frozen=True)
class StageRequest:
    """One remote operation: its kind, input artifacts and parameters."""

    kind: OperationKind
    inputs: Tuple[Artifact, ...]
    params: Dict[str, Any] = field(default_factory=dict)

    # -------------------------------------------------------------------------
    # Constructors
    # -------------------------------------------------------------------------

    @classmethod
    def combine(
        cls,
        model_image: Optional[Artifact],
        product_image: Optional[Artifact],
        instruction: Optional[str] = None,
    ) -> "StageRequest":
        if model_image is None:
            raise MissingInputError("Model image is required to combine", field="model_image")
        if product_image is None:
            raise MissingInputError("Product image is required to combine", field="product_image")
        return cls(
            OperationKind.COMBINE,
            (model_image, product_image),
            {"instruction": sanitize_prompt(instruction or "")},
        )

    @classmethod
    def refine(cls, image: Optional[Artifact], options: CustomizationOptions) -> "StageRequest":
        _require(image, "combined_image", "refine")
        return cls(
            OperationKind.REFINE,
            (image,),
            {
                "background": sanitize_prompt(options.background),
                "background_ref": sanitize_prompt(options.background_ref),
                "lighting_ref": sanitize_prompt(options.lighting_ref),
                "neon_text": sanitize_prompt(options.neon_text, max_length=40),
                "font_style": sanitize_prompt(options.font_style, max_length=40),
            },
        )

    @classmethod
    def storyboard(cls, image: Optional[Artifact], neon_text: str = "") -> "StageRequest":
        _require(image, "combined_image", "generate a storyboard")
        return cls(
            OperationKind.STORYBOARD_GRID,
            (image,),
            {"neon_text": sanitize_prompt(neon_text, max_length=40)},
        )

    @classmethod
    def extract_cell(cls, grid: Optional[Artifact], index: int) -> "StageRequest":
        _require(grid, "storyboard_grid", "extract a cell")
        if not 0 <= index < len(CELL_POSITIONS):
            raise MissingInputError(f"No storyboard cell at index {index}", field="index")
        return cls(
            OperationKind.EXTRACT_CELL,
            (grid,),
            {"index": index, "position": CELL_POSITIONS[index]},
        )

    @classmethod
    def upscale(cls, image: Optional[Artifact]) -> "StageRequest":
        _require(image, "image", "upscale")
        return cls(OperationKind.UPSCALE, (image,))

    @classmethod
    def video(cls, image: Optional[Artifact], motion_prompt: str = DEFAULT_MOTION_PROMPT) -> "StageRequest":
        _require(image, "image", "generate video")
        return cls(
            OperationKind.GENERATE_VIDEO,
            (image,),
            {"motion_prompt": sanitize_prompt(motion_prompt) or DEFAULT_MOTION_PROMPT},
        )

    # -------------------------------------------------------------------------
    # Rendering
    # -------------------------------------------------------------------------

    @property
    def prompt(self) -> str:
        """Instruction text for this operation."""
        p = self.params

        if self.kind is OperationKind.COMBINE:
            text = (
                "DIGITAL COMPOSITING: Fit the garment from the second image onto the model "
                "in the first image naturally. Keep the model's face, body and pose. "
                "Vertical 9:16 portrait format."
            )
            if p.get("instruction"):
                text += f" ADDITIONAL DIRECTION: {p['instruction']}."
            return text

        if self.kind is OperationKind.REFINE:
            text = f"BACKGROUND: {p['background']}."
            if p.get("background_ref"):
                text += f" BACKGROUND REFERENCE: {p['background_ref']}."
            if p.get("lighting_ref"):
                text += f" LIGHTING: {p['lighting_ref']}."
            if p.get("neon_text"):
                text += f' NEON BRANDING: Add the text "{p["neon_text"]}" as a neon sign'
                if p.get("font_style"):
                    text += f" in a {p['font_style']} font"
                text += "."
            return text + " Keep the model and outfit unchanged. Aspect 9:16."

        if self.kind is OperationKind.STORYBOARD_GRID:
            branding = f' and neon branding "{p["neon_text"]}"' if p.get("neon_text") else ""
            return (
                "3x3 STORYBOARD GRID: Generate 9 DIFFERENT frames of the SAME character in the SAME environment.\n"
                "REQUIRED VARIETY: Each frame MUST use a unique camera angle and pose.\n"
                "Include a mix of: Medium Shot, Extreme Close Up (face/detail), Eye Close Up, "
                "Wide Full Body, Low Angle, and Side Profile.\n"
                f"The background, lighting, character features, outfit{branding} must remain "
                "perfectly consistent across all 9 boxes.\n"
                "Output as a single 3x3 grid image. Aspect 9:16."
            )

        if self.kind is OperationKind.EXTRACT_CELL:
            pos = p["position"]
            return (
                "ACT AS AN IMAGE CROPPER.\n"
                "INPUT: A 3x3 Grid of storyboards.\n"
                f"TARGET: Only the {pos} cell.\n"
                f"ACTION: Crop the grid image so that ONLY the contents of the {pos} frame "
                "fill the entire 9:16 output.\n"
                "RESTRICTIONS:\n"
                "1. DO NOT return the original 9-grid image.\n"
                "2. REMOVE all grid lines and borders.\n"
                "3. OUTPUT must be a single clean 9:16 portrait image of one single pose.\n"
                "4. If there are surrounding boxes, cut them out completely."
            )

        if self.kind is OperationKind.UPSCALE:
            return (
                "UPSCALE: Reproduce this exact image at higher resolution. Sharpen fine detail "
                "in fabric, skin and text. Do not change composition, pose, colors or branding."
            )

        return p["motion_prompt"]

    def to_image_request(self, config: ImageConfig) -> ImageRequest:
        """Build the provider request for an image operation."""
        if self.kind is OperationKind.GENERATE_VIDEO:
            raise ValueError("Video requests are not image requests")

        if self.kind is OperationKind.STORYBOARD_GRID:
            size = config.storyboard_size
        elif self.kind is OperationKind.UPSCALE:
            size = config.upscale_size
        else:
            size = config.image_size

        return ImageRequest(
            prompt=self.prompt,
            images=list(self.inputs),
            aspect_ratio=config.aspect_ratio,
            image_size=size,
            model=config.model,
        )

    def to_video_request(self, config: VideoConfig) -> VideoRequest:
        """Build the provider request for a video operation."""
        if self.kind is not OperationKind.GENERATE_VIDEO:
            raise ValueError(f"{self.kind.value} is not a video operation")
        return VideoRequest(
            start_image=self.inputs[0],
            motion_prompt=self.prompt,
            resolution=config.resolution,
            aspect_ratio=config.aspect_ratio,
            model=config.model,
        )

    @property
    def label(self) -> str:
        if self.kind is OperationKind.EXTRACT_CELL:
            return f"{self.kind.value}[{self.params['position']}]"
        return self.kind.value


def _require(artifact: Optional[Artifact], field_name: str, action: str) -> None:
    if artifact is None:
        raise MissingInputError(f"{field_name} is required to {action}", field=field_name)
