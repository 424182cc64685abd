from ddx.core.models import CompareEngine

ENGINE_ALIASES = {
    "auto": CompareEngine.AUTO,
    "magick": CompareEngine.MAGICK,
    "imagemagick": CompareEngine.MAGICK,
    "pillow": CompareEngine.PILLOW,
    "pil": CompareEngine.PILLOW,
}

ENGINE_CHOICES = list(ENGINE_ALIASES.keys())

ENGINE_HELP_TEXT = (
    "Pixel comparison engine:\n"
    "  auto     : ImageMagick when `magick` is installed, otherwise Pillow (default)\n"
    "  magick   : `magick compare -metric PSNR` (supports wmf/emf/svg via LibreOffice)\n"
    "  pillow   : In-process PSNR with Pillow (raster formats only)\n"
)

EPILOG_TEXT = """
Examples:
  Compare two revisions of a document
  %(prog)s old.docx new.docx

  Show every image decision and write results to another directory
  %(prog)s old.docx new.docx -v -o review

  Compare without ImageMagick
  %(prog)s old.docx new.docx --engine pillow

Output:
  <output>/diff.md                      unified diff of the two markdown renderings
  <output>/imgs/                        diff images of changed pictures
  <output>/imgs/original/<document>/    originals of changed, added and removed pictures

Required tools: markitdown (always), magick (ImageMagick engine), delta (optional pager)
"""
