"""
Quart application exposing the ranked feed as a JSON API.
Identity comes from headers set by the upstream auth layer; without one the
reader gets the anonymous partition and cannot save.
"""
import logging
from typing import Any, Dict, Optional

from quart import Quart, jsonify, request
from quart_cors import cors

from core.entities import FeedEntry, FeedView, Identity, SavedStory, ToggleOutcome
from services.config import load_config
from services.identity import IdentityProvider
from services.saved_ledger import SavedLedger
from workflows.pipeline_factory import FeedServices, create_feed_services, create_ledger

logger = logging.getLogger(__name__)

IDENTITY_KEY_HEADER = 'X-Identity-Key'
IDENTITY_NAME_HEADER = 'X-Identity-Name'

# Initialize app
app = Quart(__name__)
app = cors(app)

feed_services: Optional[FeedServices] = None


def get_feed_services() -> FeedServices:
    """Get or create the shared FeedServices instance."""
    global feed_services
    if feed_services is None:
        feed_services = create_feed_services(load_config())
    return feed_services


def set_feed_services(services: Optional[FeedServices]) -> None:
    global feed_services
    feed_services = services


def current_identity() -> Optional[Identity]:
    key = request.headers.get(IDENTITY_KEY_HEADER, '').strip()
    if not key:
        return None
    return Identity(key=key, display_name=request.headers.get(IDENTITY_NAME_HEADER))


async def load_ledger(services: FeedServices) -> SavedLedger:
    ledger = create_ledger(services, IdentityProvider(current_identity()))
    await ledger.load()
    return ledger


# ==================== Serializers ====================

def entry_to_dict(entry: FeedEntry) -> Dict[str, Any]:
    story = entry.ranked.story
    breakdown = entry.ranked.breakdown
    return {
        'id': story.id,
        'title': story.title,
        'url': story.url,
        'score': story.score,
        'by': story.by,
        'time': story.time,
        'descendants': story.descendants or 0,
        'saved': entry.saved,
        'ranking': {
            'relevance': round(breakdown.relevance, 4),
            'popularity': round(breakdown.popularity, 4),
            'recency': round(breakdown.recency, 4),
            'total': round(breakdown.total, 4),
        },
    }


def view_to_dict(view: FeedView) -> Dict[str, Any]:
    return {
        'focus': view.focus_keyword,
        'stale': view.stale,
        'fetched_at': view.fetched_at,
        'count': len(view),
        'stories': [entry_to_dict(entry) for entry in view.entries],
    }


def saved_to_dict(saved: SavedStory) -> Dict[str, Any]:
    return {
        'id': saved.id,
        'title': saved.title,
        'url': saved.url,
        'by': saved.by,
        'time': saved.time,
        'saved_at': saved.saved_at,
    }


# ==================== API Routes ====================

@app.route('/health')
async def health():
    return jsonify({'status': 'ok'})


@app.route('/api/feed')
async def feed():
    """Ranked, filtered feed for the ?focus= keyword."""
    services = get_feed_services()
    focus = request.args.get('focus', '')
    ledger = await load_ledger(services)
    view = await services.pipeline.run(focus, ledger)
    return jsonify(view_to_dict(view))


@app.route('/api/refresh', methods=['POST'])
async def refresh():
    """Refetch stories ignoring the cache TTL."""
    services = get_feed_services()
    snapshot = await services.cache.refresh()
    return jsonify({
        'status': 'stale' if snapshot.stale else 'success',
        'count': len(snapshot.stories),
        'fetched_at': snapshot.fetched_at,
    })


@app.route('/api/saved')
async def saved():
    services = get_feed_services()
    ledger = await load_ledger(services)
    items = ledger.list_saved()
    return jsonify({
        'partition': ledger.active_partition,
        'count': len(items),
        'stories': [saved_to_dict(item) for item in items],
    })


@app.route('/api/saved/<int:story_id>', methods=['POST'])
async def toggle_saved(story_id: int):
    services = get_feed_services()
    ledger = await load_ledger(services)

    stories = {story.id: story for story in (await services.cache.get_snapshot()).stories}
    outcome = await ledger.toggle(story_id, stories.get(story_id))

    if outcome is ToggleOutcome.AUTH_REQUIRED:
        return jsonify({'status': outcome.value, 'message': 'Sign in to save stories.'}), 401
    if outcome is ToggleOutcome.UNKNOWN_STORY:
        return jsonify({'status': outcome.value, 'id': story_id, 'saved': False}), 404

    return jsonify({'status': outcome.value, 'id': story_id, 'saved': ledger.is_saved(story_id)})


@app.errorhandler(404)
async def not_found(error):
    return jsonify({'status': 'not_found'}), 404


@app.errorhandler(500)
async def server_error(error):
    logger.error(f"Server error: {error}")
    return jsonify({'status': 'error'}), 500
