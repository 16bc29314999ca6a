"""
Reference Rewriter
Record each target size in the page so the resource handler can
reproduce the padding when the browser requests the resource.
"""

from alpaca.document import Document
from alpaca.resources import MorphPlan, RealResource, padded_uri

# Path requested by fake padding objects; the server answers it with
# padding only.
FAKE_IMAGE_PATH = "/__alpaca_fake_image.png"
FAKE_IMAGE_STYLE = "visibility:hidden"

_REFERENCE_ATTRS = {"img": "src", "link": "href"}


def append_ref(resource: RealResource):
    """Write resource.uri plus the padding parameter back into its element."""
    element = resource.element
    attr = _REFERENCE_ATTRS.get(element.name)
    if attr is None:
        raise ValueError(f"cannot rewrite reference on <{element.name}>")
    element.set_attribute(attr, padded_uri(resource.uri, resource.target_size))


def add_padding_objects(document: Document, sizes: list[int]):
    """Append one hidden fake image per size to <body>, or to the document root."""
    parent = document.first("body") or document.root
    for size in sizes:
        parent.append_child(document.create_element("img", {
            "src": padded_uri(FAKE_IMAGE_PATH, size),
            "style": FAKE_IMAGE_STYLE,
        }))


def insert_resource_refs(document: Document, plan: MorphPlan):
    """
    Apply a morph plan to the document.

    Real resources without a target size keep their original reference
    and are served unpadded.
    """
    for resource in plan.real:
        if resource.target_size is not None:
            append_ref(resource)

    add_padding_objects(document, [obj.target_size for obj in plan.synthetic])
