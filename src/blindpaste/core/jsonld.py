"""
JSON-LD contexts describing paste and comment documents.

References of the form "?jsonld=<type>" are resolved against the URL base
of the instance serving them.
"""

import json
from typing import Any, Dict

CONTEXTS: Dict[str, Dict[str, Any]] = {
    "paste": {
        "@context": {
            "so": "https://schema.org/",
            "id": {"@id": "so:name"},
            "ct": {"@id": "so:text"},
            "adata": {"@id": "so:Property", "@container": "@list"},
            "v": {"@id": "so:version", "@type": "so:Number"},
            "meta": {"@id": "?jsonld=pastemeta"},
            "comments": {"@id": "?jsonld=comment", "@container": "@list"},
            "comment_count": {"@id": "so:commentCount", "@type": "so:Integer"},
            "comment_offset": {"@id": "so:Integer"},
            "url": {"@id": "so:url", "@type": "@id"},
            "status": {"@id": "so:Integer"},
            "deletetoken": {"@id": "so:Text"},
        }
    },
    "comment": {
        "@context": {
            "so": "https://schema.org/",
            "id": {"@id": "so:name"},
            "pasteid": {"@id": "so:name"},
            "parentid": {"@id": "?jsonld=comment"},
            "ct": {"@id": "so:text"},
            "adata": {"@id": "so:Property", "@container": "@list"},
            "v": {"@id": "so:version", "@type": "so:Number"},
            "meta": {"@id": "?jsonld=commentmeta"},
            "url": {"@id": "so:url", "@type": "@id"},
            "status": {"@id": "so:Integer"},
        }
    },
    "pastemeta": {
        "@context": {
            "so": "https://schema.org/",
            "expire": {"@id": "so:expires", "@type": "so:Text"},
            "time_to_live": {"@id": "so:Integer"},
        }
    },
    "commentmeta": {
        "@context": {
            "so": "https://schema.org/",
            "created": {"@id": "so:dateCreated", "@type": "so:Integer"},
        }
    },
}


def get_context(kind: Any, url_base: str) -> Dict[str, Any]:
    """Context for a document type, or an empty object for unknown types."""
    if not isinstance(kind, str) or kind not in CONTEXTS:
        return {}

    # Round-trip through JSON so every nested reference gets the prefix.
    prefix = json.dumps(url_base)[1:-1]
    serialized = json.dumps(CONTEXTS[kind])
    return json.loads(serialized.replace('"?jsonld=', f'"{prefix}?jsonld='))
