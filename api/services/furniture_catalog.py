"""
Static furniture reference catalog.

Mirrors the furniture menu bundled with the frontend; each entry points at a
reference image inside the frontend tree.
"""
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union


@dataclass(frozen=True)
class FurnitureReference:
    id: str
    name: str
    image: str
    category: str


FURNITURE_REFERENCES: List[FurnitureReference] = [
    # Living Room
    FurnitureReference("sofa-1", "Modern Sofa", "/lovable-uploads/7adc2304-b1d3-4933-bf4a-78b784a87b24.png", "living"),
    FurnitureReference("sofa-2", "Neutral Sofa", "src/assets/furniture/sofa-neutral.png", "living"),
    FurnitureReference("armchair-1", "Leather Armchair", "/lovable-uploads/94e616fa-2037-4802-98ad-22c97a8349b9.png", "living"),
    FurnitureReference("chair-1", "Neutral Chair", "src/assets/furniture/chair-neutral.png", "living"),
    FurnitureReference("coffee-table", "Coffee Table", "src/assets/furniture/coffee-table.png", "living"),
    FurnitureReference(
        "round-coffee-table", "Round Coffee Table", "/lovable-uploads/5ada5843-ed84-4ab0-b0f1-1dd7c0c97530.png", "living"
    ),
    FurnitureReference("side-table", "Side Table", "src/assets/furniture/side-table.png", "living"),
    FurnitureReference("tv-stand", "TV Stand", "src/assets/furniture/tv-stand.png", "living"),
    FurnitureReference("floor-lamp", "Floor Lamp", "/lovable-uploads/69630eb6-2e4b-4cbb-80fd-641b190f29a0.png", "living"),
    # Dining
    FurnitureReference("dining-table", "Dining Table", "src/assets/furniture/table-dining.png", "dining"),
    FurnitureReference(
        "dining-table-set", "Dining Table Set", "/lovable-uploads/f08af0d5-bcfb-445a-86e7-230f0987274a.png", "dining"
    ),
    FurnitureReference(
        "modern-dining-table", "Modern Dining Table", "/lovable-uploads/f8145924-89f4-4d41-8da2-507042f0fa41.png", "dining"
    ),
    FurnitureReference(
        "elegant-dining-set", "Elegant Dining Set", "/lovable-uploads/14762623-97d1-404a-8b9a-5c0ea1c9fc58.png", "dining"
    ),
    # Bedroom
    FurnitureReference("bed-1", "Queen Bed", "src/assets/furniture/bed-queen.png", "bedroom"),
    FurnitureReference("nightstand", "Nightstand", "src/assets/furniture/nightstand.png", "bedroom"),
    FurnitureReference("dresser", "Dresser", "src/assets/furniture/dresser.png", "bedroom"),
    FurnitureReference("table-lamp", "Table Lamp", "src/assets/furniture/table-lamp.png", "bedroom"),
    # Office
    FurnitureReference("office-chair", "Office Chair", "src/assets/furniture/office-chair.png", "office"),
    FurnitureReference("desk", "Writing Desk", "src/assets/furniture/desk.png", "office"),
    FurnitureReference("bookshelf", "Bookshelf", "src/assets/furniture/bookshelf.png", "office"),
]

CATEGORY_LABELS = {
    "living": "Living Room",
    "dining": "Dining",
    "bedroom": "Bedroom",
    "office": "Office",
}


def list_references(category: Optional[str] = None) -> List[FurnitureReference]:
    if not category or category == "all":
        return list(FURNITURE_REFERENCES)
    return [ref for ref in FURNITURE_REFERENCES if ref.category == category]


def get_reference(reference_id: str) -> Optional[FurnitureReference]:
    return next((ref for ref in FURNITURE_REFERENCES if ref.id == reference_id), None)


def resolve_reference_path(image: str, frontend_root: Union[str, Path]) -> Path:
    """
    Map a frontend image path to a file on disk.

    "/foo.png"             -> <frontend_root>/public/foo.png
    "src/assets/foo.png"   -> <frontend_root>/src/assets/foo.png
    anything else          -> <frontend_root>/public/<image>
    """
    if ".." in Path(image).parts:
        raise ValueError(f"Furniture image path escapes the frontend tree: {image}")
    root = Path(frontend_root)
    if image.startswith("src/assets/"):
        return root / image
    return root / "public" / image.lstrip("/")
