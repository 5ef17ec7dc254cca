import logging
from enum import Enum
from typing import Callable, List, Optional, Union

from fitsocial.core.errors import InvalidStateError, SocialError
from fitsocial.directory.schemas import DirectoryCandidate
from fitsocial.directory.service import DirectoryService, filter_candidates
from fitsocial.feed.models import FeedItem
from fitsocial.feed.service import ActivityAggregator
from fitsocial.follow.models import RelationshipStatus
from fitsocial.follow.schemas import FollowEdgeRead, FollowRequestUser, FollowingUser
from fitsocial.follow.service import FollowGraphService
from fitsocial.notifications.pending_counter import PendingRequestCounter
from fitsocial.reactions.models import ReactionKind, apply_reaction_delta
from fitsocial.reactions.service import ReactionLedger

logger = logging.getLogger(__name__)

class HubView(str, Enum):
    FEED = "feed"
    EXPLORE = "explore"
    REQUESTS = "requests"
    FOLLOWING = "following"

class CommunityHubState:
    """
    One user's session in the community hub.

    Every view switch starts a load tagged with a new generation number.
    A load that completes after a newer switch is dropped, so a slow response
    for an abandoned view never overwrites fresher state. Views are reloaded
    on every switch; nothing read is kept across switches.
    """

    def __init__(
        self,
        user_id: str,
        follow_graph: FollowGraphService,
        aggregator: ActivityAggregator,
        ledger: ReactionLedger,
        directory: DirectoryService,
        counter: PendingRequestCounter,
    ):
        self.user_id = user_id
        self.follow_graph = follow_graph
        self.aggregator = aggregator
        self.ledger = ledger
        self.directory = directory
        self.counter = counter

        self.view = HubView.FEED
        self.generation = 0
        self.loading = False
        self.pending_count = 0
        self.feed_items: List[FeedItem] = []
        self.candidates: List[DirectoryCandidate] = []
        self.requests: List[FollowRequestUser] = []
        self.following: List[FollowingUser] = []
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def open(self) -> int:
        """Subscribe the badge and load the initial pending count"""
        if self._unsubscribe is None:
            self._unsubscribe = self.counter.subscribe(self.user_id, self._on_pending_count)
        return await self.counter.refresh(self.user_id)

    def close(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_pending_count(self, user_id: str, count: int) -> None:
        self.pending_count = count

    async def switch_view(self, view: Union[HubView, str]) -> bool:
        """
        Make view active and load it.
        Returns False when a newer switch superseded this load, including a
        load that failed after the user moved on.
        """
        view = HubView(view)
        self.generation += 1
        generation = self.generation
        self.view = view
        self.loading = True

        try:
            result = await self._load(view)
        except SocialError as e:
            if generation != self.generation:
                logger.debug(f"Ignoring failed stale {view.value} load for {self.user_id}: {e.detail}")
                return False
            raise
        finally:
            if generation == self.generation:
                self.loading = False

        if generation != self.generation:
            logger.debug(f"Dropping stale {view.value} load for {self.user_id} (generation {generation})")
            return False

        self._apply(view, result)
        return True

    async def reload(self) -> bool:
        return await self.switch_view(self.view)

    async def _load(self, view: HubView):
        if view is HubView.FEED:
            return await self.aggregator.build_feed(self.user_id)
        if view is HubView.EXPLORE:
            return await self.directory.list_candidates(self.user_id)
        if view is HubView.REQUESTS:
            requests = await self.follow_graph.list_requests(self.user_id)
            await self.counter.refresh(self.user_id)
            return requests
        return await self.follow_graph.list_following(self.user_id)

    def _apply(self, view: HubView, result) -> None:
        if view is HubView.FEED:
            self.feed_items = result
        elif view is HubView.EXPLORE:
            self.candidates = result
        elif view is HubView.REQUESTS:
            self.requests = result
        else:
            self.following = result

    def search(self, query: Optional[str]) -> List[DirectoryCandidate]:
        """Filter the fetched explore page without a new query"""
        return filter_candidates(self.candidates, query)

    # Actions

    async def follow(self, user_id: str) -> FollowEdgeRead:
        edge = await self.follow_graph.request_follow(self.user_id, user_id)
        self.candidates = [
            c.model_copy(update={"status": RelationshipStatus.PENDING}) if c.user_id == user_id else c
            for c in self.candidates
        ]
        return edge

    async def accept(self, request: FollowRequestUser) -> FollowEdgeRead:
        edge = await self.follow_graph.accept_request(request.edge_id, self.user_id)
        self.requests = [r for r in self.requests if r.edge_id != request.edge_id]
        return edge

    async def decline(self, request: FollowRequestUser) -> bool:
        declined = await self.follow_graph.decline_request(request.edge_id, self.user_id)
        self.requests = [r for r in self.requests if r.edge_id != request.edge_id]
        return declined

    async def unfollow(self, followed: FollowingUser) -> None:
        await self.follow_graph.unfollow(followed.edge_id, self.user_id)
        self.following = [f for f in self.following if f.edge_id != followed.edge_id]

    async def react(self, item_id: str, kind: Union[ReactionKind, str]) -> Optional[ReactionKind]:
        """
        Toggle a reaction on a feed item.

        The tally is updated before the write is confirmed. On failure the
        item goes back to its last confirmed state and the error propagates.
        When the feed was reloaded or the item changed while the write was in
        flight, the newer state is kept as it is.
        """
        kind = ReactionKind(kind)
        confirmed_item = self._find_item(item_id)
        previous = confirmed_item.my_reaction
        expected = None if previous == kind else kind

        generation = self.generation
        optimistic_item = self._with_reaction(confirmed_item, previous, expected)
        self._replace_item(optimistic_item)
        try:
            result = await self.ledger.toggle_reaction(
                self.user_id, item_id, confirmed_item.target_type, kind
            )
        except SocialError:
            self._patch_if_unchanged(generation, optimistic_item, confirmed_item)
            raise

        if result != expected:
            # Local state was behind the store; trust the ledger
            self._patch_if_unchanged(
                generation, optimistic_item, self._with_reaction(confirmed_item, previous, result)
            )
        return result

    def _find_item(self, item_id: str) -> FeedItem:
        for item in self.feed_items:
            if item.id == item_id:
                return item
        raise InvalidStateError("Activity is no longer in the feed")

    def _replace_item(self, new_item: FeedItem) -> None:
        key = (new_item.id, new_item.target_type)
        self.feed_items = [
            new_item if (item.id, item.target_type) == key else item for item in self.feed_items
        ]

    def _patch_if_unchanged(self, generation: int, shown: FeedItem, new_item: FeedItem) -> None:
        """Replace shown with new_item unless a reload or another reaction replaced it first"""
        if generation != self.generation:
            logger.debug(f"Feed reloaded during reaction on {shown.id}, keeping reloaded item")
            return
        if any(item is shown for item in self.feed_items):
            self._replace_item(new_item)

    @staticmethod
    def _with_reaction(
        item: FeedItem,
        previous: Optional[ReactionKind],
        new: Optional[ReactionKind],
    ) -> FeedItem:
        return item.model_copy(update={
            "my_reaction": new,
            "reaction_counts": apply_reaction_delta(item.reaction_counts, previous, new),
        })
