"""Card rendering built on top of Pillow."""

from .assets import AssetResolver, Failed, Loaded, build_local_image_map, placeholder_image
from .batch import CardBatch, CardOutcome, render_cards
from .compositor import CardCompositor, CardTextPlan
from .errors import CompositionError, MissingAssetError
from .textfit import fit_font_size

__all__ = [
    "AssetResolver",
    "CardBatch",
    "CardCompositor",
    "CardOutcome",
    "CardTextPlan",
    "CompositionError",
    "Failed",
    "Loaded",
    "MissingAssetError",
    "build_local_image_map",
    "fit_font_size",
    "placeholder_image",
    "render_cards",
]
