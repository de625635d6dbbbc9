# doughmain/core/content.py
import logging
from typing import Any, Dict, List, Optional

from doughmain.core import collections
from doughmain.core.documents import DocumentStore, SERVER_TIMESTAMP
from doughmain.core.errors import CallableError

logger = logging.getLogger(__name__)

CONTENT_ACTIONS = ("create", "update", "delete")

DEFAULT_SITE_SETTINGS: Dict[str, str] = {
    "siteName": "DoughMain",
    "tagline": "Take Control of Your Money",
    "primaryColor": "#4f46e5",
    "secondaryColor": "#764ba2",
    "accentColor": "#667eea",
    "heroTitle": "Transform Your Financial Future",
    "heroSubtitle": (
        "Your journey to financial freedom starts here. Track every dollar, "
        "crush your goals, and build the wealth you deserve."
    ),
    "ctaText": "Start Free Today",
}


async def manage_content_item(
    store: DocumentStore,
    uid: str,
    action: Optional[str],
    collection: Optional[str],
    item_id: Optional[str] = None,
    item_data: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    if action not in CONTENT_ACTIONS:
        raise CallableError("invalid-argument", "Invalid action")
    if not collection:
        raise CallableError("invalid-argument", "Collection name required")

    items = collections.content_items(store, collection)
    item_data = dict(item_data or {})

    if action == "create":
        ref = await items.add(
            {
                **item_data,
                "createdBy": uid,
                "createdAt": SERVER_TIMESTAMP,
                "updatedAt": SERVER_TIMESTAMP,
            }
        )
        logger.info(f"Created content item {collection}/{ref.id}")
        return {"success": True, "id": ref.id, "action": "created"}

    if not item_id:
        raise CallableError("invalid-argument", f"Item ID required for {action}")

    if action == "update":
        await items.document(item_id).update(
            {**item_data, "updatedBy": uid, "updatedAt": SERVER_TIMESTAMP}
        )
        return {"success": True, "id": item_id, "action": "updated"}

    await items.document(item_id).delete()
    return {"success": True, "id": item_id, "action": "deleted"}


async def list_content_items(
    store: DocumentStore, collection: Optional[str]
) -> List[Dict[str, Any]]:
    if not collection:
        raise CallableError("invalid-argument", "Collection name required")
    snapshots = await collections.content_items(store, collection).get()
    return [{"id": snap.id, **snap.to_dict()} for snap in snapshots]


async def save_site_settings(
    store: DocumentStore, uid: str, settings: Optional[Dict[str, Any]]
) -> None:
    await collections.site_settings_ref(store).set(
        {**(settings or {}), "updatedBy": uid, "updatedAt": SERVER_TIMESTAMP},
        merge=True,
    )


async def load_site_settings(store: DocumentStore) -> Dict[str, Any]:
    snapshot = await collections.site_settings_ref(store).get()
    if not snapshot.exists:
        return dict(DEFAULT_SITE_SETTINGS)
    return snapshot.to_dict()
