"""
PillowImageEngine - Decoding, color normalization, resampling and JPEG
encoding using Pillow.
"""

import io
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from PIL import Image, ImageCms, ImageOps

from .errors import ImageEngineError

# ImageMagick quantization table by N. Robidoux (quant table 3 in mozjpeg and
# libvips), natural order, used for both luminance and chrominance
ROBIDOUX_QUANT_TABLE = (
    16, 16, 16, 18, 25, 37, 56, 85,
    16, 17, 20, 27, 34, 40, 53, 75,
    16, 20, 24, 31, 43, 62, 91, 135,
    18, 27, 31, 40, 53, 74, 106, 156,
    25, 34, 43, 53, 69, 94, 131, 189,
    37, 40, 62, 74, 94, 124, 169, 238,
    56, 53, 91, 106, 131, 169, 226, 311,
    85, 75, 135, 156, 189, 238, 311, 418,
)

# Modes holding more than 8 bits per sample
HIGH_BIT_DEPTH_MODES = ('I', 'I;16', 'I;16L', 'I;16B', 'I;16N')


def scale_quant_table(table: Tuple[int, ...], quality: int) -> List[int]:
    """
    Scale a base quantization table for a JPEG quality, as libjpeg does.

    Values are clamped to 1..255 so the output stays baseline compatible.
    """
    quality = min(max(quality, 1), 100)
    if quality < 50:
        scale = 5000 // quality
    else:
        scale = 200 - quality * 2
    return [min(max((value * scale + 50) // 100, 1), 255) for value in table]


@dataclass(frozen=True)
class JpegProfile:
    """
    Encoder settings shared by every generated JPEG.

    Attributes:
        quality: JPEG quality
        progressive: Write an interlaced (progressive) JPEG
        optimize: Compute optimal Huffman tables
        subsampling: Chroma subsampling; None leaves the choice to the encoder
        quant_table: Base quantization table scaled by quality; None uses the
            encoder's standard tables
    """
    quality: int = 75
    progressive: bool = True
    optimize: bool = True
    subsampling: Optional[int] = None
    quant_table: Optional[Tuple[int, ...]] = ROBIDOUX_QUANT_TABLE

    def quantization_tables(self) -> Optional[List[List[int]]]:
        """Luminance and chrominance tables for this quality, or None."""
        if self.quant_table is None:
            return None
        table = scale_quant_table(self.quant_table, self.quality)
        return [table, list(table)]

    def save_options(self) -> dict:
        """Keyword arguments for Image.save(format='JPEG')."""
        options = {
            'progressive': self.progressive,
            'optimize': self.optimize,
        }
        qtables = self.quantization_tables()
        if qtables is None:
            options['quality'] = self.quality
        else:
            # Tables are already scaled; a quality would scale them again
            options['qtables'] = qtables
        if self.subsampling is not None:
            options['subsampling'] = self.subsampling
        return options


class PillowImageEngine:
    """
    Image engine backed by Pillow.
    """

    JPEG_FORMATS = ('JPEG', 'MPO')

    def __init__(
        self,
        profile: Optional[JpegProfile] = None,
        max_image_pixels: Optional[int] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize image engine.

        Args:
            profile: JPEG encoder settings (default: JpegProfile())
            max_image_pixels: Pixel count above which Pillow refuses to decode
                an image; None removes the limit. This is process-wide.
            logger: Optional logger instance
        """
        self.profile = profile or JpegProfile()
        self.logger = logger or logging.getLogger(__name__)
        self.max_image_pixels = max_image_pixels
        Image.MAX_IMAGE_PIXELS = max_image_pixels
        self._srgb = ImageCms.createProfile('sRGB')

    def decode(self, path: str) -> Image.Image:
        """
        Open and fully decode an image, upright per its EXIF orientation.

        The caller owns the returned handle and must close it.

        Raises:
            ImageEngineError: If the file is not a readable image
        """
        image = None
        try:
            image = Image.open(path)
            image.load()
            # In place, so the decoded format is kept
            ImageOps.exif_transpose(image, in_place=True)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            if image is not None:
                image.close()
            raise ImageEngineError(f"Cannot decode {path}: {e}") from e
        return image

    def is_jpeg(self, image: Image.Image) -> bool:
        """True if the image was decoded from a JPEG file."""
        return image.format in self.JPEG_FORMATS

    def to_srgb(self, image: Image.Image) -> Image.Image:
        """
        Convert an image to 8-bit sRGB for web viewing.

        An embedded ICC profile is converted to sRGB, transparency is
        flattened onto white.
        """
        icc_profile = image.info.get('icc_profile')
        if icc_profile and image.mode in ('RGB', 'RGBA', 'CMYK'):
            try:
                source_profile = ImageCms.getOpenProfile(io.BytesIO(icc_profile))
                output_mode = 'RGBA' if image.mode == 'RGBA' else 'RGB'
                image = ImageCms.profileToProfile(
                    image, source_profile, self._srgb, outputMode=output_mode
                )
            except ImageCms.PyCMSError as e:
                self.logger.warning(f"Ignoring unusable ICC profile: {e}")

        return self._convert_color_mode(image)

    def encode_jpeg(self, image: Image.Image, profile: Optional[JpegProfile] = None) -> bytes:
        """
        Encode an image as JPEG.

        Returns:
            The encoded bytes

        Raises:
            ImageEngineError: If encoding fails
        """
        profile = profile or self.profile
        output = io.BytesIO()
        try:
            image.save(output, format='JPEG', **profile.save_options())
        except (OSError, ValueError) as e:
            raise ImageEngineError(f"Cannot encode JPEG: {e}") from e
        return output.getvalue()

    def thumbnail_from_path(self, path: str, max_width: int, height: int) -> Image.Image:
        """
        Resample an image file to a target height.

        The image is first turned upright per its EXIF orientation. The aspect
        ratio is preserved, nothing is cropped, the width is only capped by
        max_width, and images already smaller than the target are not enlarged.

        Returns:
            A new sRGB image owned by the caller

        Raises:
            ImageEngineError: If the file cannot be read or resampled
        """
        try:
            with Image.open(path) as source:
                image = self._reduce_bit_depth(ImageOps.exif_transpose(source))
                if image.mode == 'P':
                    image = image.convert('RGBA')
                image.thumbnail((max_width, height), Image.Resampling.LANCZOS)
                image = self.to_srgb(image)
        except (OSError, ValueError, Image.DecompressionBombError) as e:
            raise ImageEngineError(f"Cannot resample {path}: {e}") from e
        return image

    def _reduce_bit_depth(self, img: Image.Image) -> Image.Image:
        """Rescale 16-bit samples to 8 bits; other modes are returned as is."""
        if img.mode in HIGH_BIT_DEPTH_MODES:
            return img.convert('I').point(lambda value: value * (1 / 256)).convert('L')
        return img

    def _convert_color_mode(self, img: Image.Image) -> Image.Image:
        """Convert image to an RGB mode suitable for JPEG output."""
        img = self._reduce_bit_depth(img)
        if img.mode in ('RGBA', 'LA'):
            background = Image.new('RGB', img.size, (255, 255, 255))
            if img.mode == 'LA':
                img = img.convert('RGBA')
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode == 'P':
            img = img.convert('RGBA')
            background = Image.new('RGB', img.size, (255, 255, 255))
            background.paste(img, mask=img.split()[-1])
            return background
        elif img.mode != 'RGB':
            return img.convert('RGB')
        return img
