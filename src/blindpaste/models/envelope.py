"""
Encrypted envelope models and validation.

The server cannot read submissions, so validation only checks the shape of
the v2 envelope:
- Pastes carry exactly: v, adata, ct, meta (meta holding only "expire")
- Comments carry exactly: v, adata, ct, pasteid, parentid
- iv / salt / ct are base64; iv <= 24 chars, salt <= 14 chars
- Cipher parameters are limited to the values the client can produce
"""

import base64
import binascii
import zlib
from typing import Any, Dict, Tuple, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator
from pydantic import ValidationError as PydanticValidationError

from ..core.exceptions import ValidationError

logger = structlog.get_logger(__name__)

ID_PATTERN = r"^[a-f0-9]{16}$"

# iv, salt, iterations, key size, tag size, algorithm, mode, compression
CipherParams = Tuple[StrictStr, StrictStr, StrictInt, StrictInt, StrictInt, StrictStr, StrictStr, StrictStr]

KEY_SIZES = (128, 196, 256)
TAG_SIZES = (64, 96, 128)
CIPHER_MODES = ("ctr", "cbc", "gcm")
COMPRESSIONS = ("zlib", "none")
MIN_ITERATIONS = 10000
FORMAT_VERSION = 2


def _b64decode(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError):
        return b""


def _deflate(data: bytes) -> bytes:
    compressor = zlib.compressobj(6, zlib.DEFLATED, -zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


def check_cipher_params(params: CipherParams) -> CipherParams:
    """Validate the cipher parameter block shared by pastes and comments."""
    iv, salt, iterations, key_size, tag_size, algorithm, mode, compression = params

    if not _b64decode(iv) or len(iv) > 24:
        raise ValueError("Initialization vector must be base64 and at most 24 characters")
    if not _b64decode(salt) or len(salt) > 14:
        raise ValueError("Salt must be base64 and at most 14 characters")
    if iterations <= MIN_ITERATIONS:
        raise ValueError(f"Key derivation needs more than {MIN_ITERATIONS} iterations")
    if key_size not in KEY_SIZES:
        raise ValueError(f"Key size must be one of {KEY_SIZES}")
    if tag_size not in TAG_SIZES:
        raise ValueError(f"Tag size must be one of {TAG_SIZES}")
    if algorithm != "aes":
        raise ValueError("Algorithm must be aes")
    if mode not in CIPHER_MODES:
        raise ValueError(f"Cipher mode must be one of {CIPHER_MODES}")
    if compression not in COMPRESSIONS:
        raise ValueError(f"Compression must be one of {COMPRESSIONS}")

    return params


class EnvelopeBase(BaseModel):
    """Fields common to paste and comment envelopes."""

    v: StrictInt = Field(description="Envelope format version, always 2")
    ct: StrictStr = Field(description="Base64 ciphertext")

    model_config = ConfigDict(extra="forbid")

    @field_validator("v")
    def validate_version(cls, v: int) -> int:
        if v != FORMAT_VERSION:
            raise ValueError(f"Envelope version must be {FORMAT_VERSION}")
        return v

    @field_validator("ct")
    def validate_ciphertext(cls, v: str) -> str:
        """Ciphertext must be base64 and must not compress (low entropy)."""
        decoded = _b64decode(v)
        if not decoded:
            raise ValueError("Ciphertext must be non-empty base64")
        if len(decoded) > len(_deflate(decoded)):
            raise ValueError("Ciphertext entropy too low")
        return v


class PasteEnvelope(EnvelopeBase):
    """
    A new paste.

    adata: [cipher_params, formatter, open_discussion, burn_after_reading]
    """

    adata: Tuple[CipherParams, StrictStr, StrictInt, StrictInt] = Field(
        description="Authenticated data bound to the ciphertext"
    )
    meta: Dict[str, StrictStr] = Field(description="Server side options, only 'expire'")

    @field_validator("adata")
    def validate_adata(cls, v: Tuple[CipherParams, str, int, int]) -> Tuple[CipherParams, str, int, int]:
        check_cipher_params(v[0])
        return v

    @field_validator("meta")
    def validate_meta(cls, v: Dict[str, str]) -> Dict[str, str]:
        if set(v) != {"expire"}:
            raise ValueError("Paste meta must contain exactly the 'expire' key")
        return v


class CommentEnvelope(EnvelopeBase):
    """A comment on an existing paste or on another comment."""

    adata: CipherParams = Field(description="Cipher parameters bound to the ciphertext")
    pasteid: StrictStr = Field(pattern=ID_PATTERN, description="Paste the comment belongs to")
    parentid: StrictStr = Field(pattern=ID_PATTERN, description="Paste or comment replied to")

    @field_validator("adata")
    def validate_adata(cls, v: CipherParams) -> CipherParams:
        return check_cipher_params(v)


def is_comment_submission(data: Dict[str, Any]) -> bool:
    """A submission naming both a paste and a parent is a comment."""
    return bool(data.get("pasteid")) and bool(data.get("parentid"))


def validate_envelope(data: Any, is_comment: bool) -> Union[PasteEnvelope, CommentEnvelope]:
    """
    Validate a submission against the envelope for its kind.

    Raises ValidationError("Invalid data.") on any mismatch.
    """
    if not isinstance(data, dict):
        raise ValidationError()

    model = CommentEnvelope if is_comment else PasteEnvelope
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        logger.debug(
            "Envelope rejected",
            kind="comment" if is_comment else "paste",
            error_count=e.error_count(),
            fields=sorted({str(error["loc"][0]) for error in e.errors() if error["loc"]}),
        )
        raise ValidationError(details={"errors": e.error_count()})
