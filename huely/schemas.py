# =============================================================================
# Huely - Data Schemas
# =============================================================================
# Pydantic models for the values that cross component boundaries: camera
# device descriptors, capture artifacts, the on-disk credential file and the
# subset of the Chat Completions response the vision client reads.
# =============================================================================

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ImageFormat(str, Enum):
    """Format tag derived from an artifact's magic bytes."""

    JPEG = "jpeg"
    BMP = "bmp"
    PPM = "ppm"
    PNG = "png"
    UNKNOWN = "unknown"


class DeviceDescriptor(BaseModel):
    """
    A camera found during enumeration.

    Attributes:
        id:           Handle passed to the native capture tool (an index,
                      a device name, or a device number, depending on the
                      platform driver).
        display_name: Human-readable name shown in the device menu.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Platform-specific device handle")
    display_name: str = Field(..., description="Human-readable device name")


class CaptureArtifact(BaseModel):
    """
    A captured image file together with its content.

    Attributes:
        file_path: Location of the artifact on disk.
        content:   Raw bytes of the file.
        format:    Format detected from the magic bytes.
    """

    model_config = ConfigDict(frozen=True)

    file_path: str
    content: bytes
    format: ImageFormat


class CredentialFile(BaseModel):
    """
    Contents of ~/.huely/config.json.

    Unknown keys are kept so that rewriting the file never drops them.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    openai_api_key: Optional[str] = Field(default=None, alias="openaiApiKey")


class ChatMessage(BaseModel):
    role: str = "assistant"
    content: Optional[str] = None


class ChatChoice(BaseModel):
    index: int = 0
    message: ChatMessage
    finish_reason: Optional[str] = None


class ChatCompletionResponse(BaseModel):
    """Subset of the Chat Completions response body used by the client."""

    id: Optional[str] = None
    model: Optional[str] = None
    choices: List[ChatChoice] = Field(default_factory=list)
