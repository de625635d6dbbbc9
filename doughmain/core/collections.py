"""Document store collection names (schema-in-code).

Collections come into existence on first write. Use these constants and
helpers so paths stay consistent across endpoints and jobs.

Layout:
    users/{uid}/plaid_items/{item_id}
    users/{uid}/accounts/{account_id}
    users/{uid}/transactions/{transaction_id}
    global_content/{collection}/items/{item_id}
    site_settings/global
"""

from doughmain.core.documents import CollectionReference, DocumentReference, DocumentStore

COLLECTION_USERS = "users"
COLLECTION_PLAID_ITEMS = "plaid_items"
COLLECTION_ACCOUNTS = "accounts"
COLLECTION_TRANSACTIONS = "transactions"

COLLECTION_GLOBAL_CONTENT = "global_content"
COLLECTION_CONTENT_ITEMS = "items"

COLLECTION_SITE_SETTINGS = "site_settings"
DOCUMENT_GLOBAL_SETTINGS = "global"


def user_ref(store: DocumentStore, user_id: str) -> DocumentReference:
    if not user_id:
        raise ValueError("User ID required")
    return store.collection(COLLECTION_USERS).document(user_id)


def plaid_items(store: DocumentStore, user_id: str) -> CollectionReference:
    return user_ref(store, user_id).collection(COLLECTION_PLAID_ITEMS)


def accounts(store: DocumentStore, user_id: str) -> CollectionReference:
    return user_ref(store, user_id).collection(COLLECTION_ACCOUNTS)


def transactions(store: DocumentStore, user_id: str) -> CollectionReference:
    return user_ref(store, user_id).collection(COLLECTION_TRANSACTIONS)


def content_items(store: DocumentStore, collection: str) -> CollectionReference:
    return (
        store.collection(COLLECTION_GLOBAL_CONTENT)
        .document(collection)
        .collection(COLLECTION_CONTENT_ITEMS)
    )


def site_settings_ref(store: DocumentStore) -> DocumentReference:
    return store.collection(COLLECTION_SITE_SETTINGS).document(DOCUMENT_GLOBAL_SETTINGS)
