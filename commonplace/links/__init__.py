"""
links package
-------------------
Symmetric internal links between entries and fingerprinted external links.

- LinkGraph: link operations over a Store
- InternalLink / ExternalLink: values yielded by ``LinkGraph.links_of``
- Fingerprint: SHA-1 identity of an external locator
"""
from commonplace.links.fingerprint import Fingerprint, normalize_locator
from commonplace.links.graph import LinkGraph, external_links, internal_links
from commonplace.links.models import ExternalLink, InternalLink, Link

__all__ = [
    "ExternalLink",
    "Fingerprint",
    "InternalLink",
    "Link",
    "LinkGraph",
    "external_links",
    "internal_links",
    "normalize_locator",
]
