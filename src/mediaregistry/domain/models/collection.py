from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True, slots=True)
class CollectionSpec:
    name: str
    folder: str
    resource_kind: str = "image"
    # When set, reads merge the remote listing of ``list_folder`` into the view.
    merge_remote: bool = False
    list_folder: str | None = None
    metadata_defaults: dict[str, str] = field(default_factory=dict)


GALLERY = CollectionSpec(
    name="gallery",
    folder="gallery",
    resource_kind="image",
    merge_remote=True,
    list_folder=None,
)

PROJECTS = CollectionSpec(
    name="projects",
    folder="projects",
    resource_kind="image",
    merge_remote=False,
    metadata_defaults={"title": "Project", "category": "General", "description": ""},
)

DOCUMENTS_FOLDER = "resumes"
DOCUMENTS_RESOURCE_KIND = "raw"

DEFAULT_COLLECTIONS: dict[str, CollectionSpec] = {
    GALLERY.name: GALLERY,
    PROJECTS.name: PROJECTS,
}
