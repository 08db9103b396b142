"""End-to-end workflow tests against in-process fakes."""

import pytest

from conftest import FakeChat, FakeImages, FakeRepository, fenced, run
from models.session_models import MessageRole, WorkMode
from models.workflow_state import Phase
from services.openai.errors import ConfigurationError, RateLimitExhausted
from services.workflow import messages
from services.workflow.controller import ImageUpload, WorkflowController
from services.workflow.state_store import WorkflowStateStore


PROPOSALS_REPLY = "Lovely bread! Three ideas:\n" + fenced(
    {
        "analysis": "Round, golden loaf",
        "proposals": [
            {"id": "1", "title": "Rustic Board", "description": "Sliced on wood", "menuMaterial": "Butter", "equipment": "Board"},
            {"id": "2", "title": "Picnic Basket", "description": "Outdoor mood", "menuMaterial": "Jam", "equipment": "Basket"},
        ],
    }
)
IMAGE_REPLY = "Great choice.\n" + fenced({"action": "generate_image", "prompt": "bread on a rustic board"})
EQUIPMENT_REPLY = "Prepare these:\n" + fenced(
    {"action": "equipment_list", "equipmentList": [{"name": "Board", "quantity": "1", "category": "prop"}]}
)


def _controller(replies=None, image_results=None):
    repo, chat, images = FakeRepository(), FakeChat(replies, image_results), FakeImages()
    return WorkflowController(repo, chat, images), repo, chat, images


def _roles(session):
    return [m.role for m in session.messages]


class TestSessions:
    def test_create_uses_dated_default_title(self, workflow, repo):
        result = run(workflow.create_session("u1", WorkMode.COOP_LETTER))
        assert result.session.title.startswith("Co-op Letter ")
        assert result.session.id in repo.sessions
        assert result.state.phase is Phase.WAITING

    def test_create_survives_a_failed_save(self, workflow, repo):
        repo.fail_upserts = True
        result = run(workflow.create_session("u1", WorkMode.OHISAMA, "Bread day"))
        assert result.session.title == "Bread day"
        assert repo.sessions == {}

        listed = run(workflow.list_sessions("u1", WorkMode.OHISAMA))
        assert [s.id for s in listed] == [result.session.id]
        assert run(workflow.open_session(result.session.id)).session.title == "Bread day"

        repo.fail_upserts = False
        sent = run(workflow.send_message(result.session.id, "hello"))
        assert _roles(sent.session) == [MessageRole.USER, MessageRole.ASSISTANT]
        assert len(repo.sessions[result.session.id].messages) == 2
        assert run(workflow.list_sessions("u1", WorkMode.OHISAMA))[0].id == result.session.id

    def test_deleting_the_last_session_creates_a_new_one(self, workflow, repo, images):
        first = run(workflow.create_session("u1", WorkMode.OHISAMA)).session
        result = run(workflow.delete_session(first.id))
        assert result.session.id != first.id
        assert result.session.mode is WorkMode.OHISAMA
        assert list(repo.sessions) == [result.session.id]
        assert images.discarded == [first.id]

    def test_deleting_returns_a_remaining_session(self, workflow, repo):
        keep = run(workflow.create_session("u1", WorkMode.OHISAMA)).session
        gone = run(workflow.create_session("u1", WorkMode.OHISAMA)).session
        run(workflow.create_session("u1", WorkMode.COOP_LETTER))
        result = run(workflow.delete_session(gone.id))
        assert result.session.id == keep.id

    def test_delete_unknown_session(self, workflow):
        with pytest.raises(KeyError):
            run(workflow.delete_session("missing"))

    def test_proceed_to_next_completes_and_opens_new(self, workflow, repo):
        first = run(workflow.create_session("u1", WorkMode.OHISAMA)).session
        result = run(workflow.proceed_to_next(first.id))
        assert repo.sessions[first.id].is_completed is True
        assert result.session.id != first.id
        assert result.session.is_completed is False

    def test_proceed_to_next_drops_the_finished_state(self):
        states = WorkflowStateStore()
        workflow = WorkflowController(FakeRepository(), FakeChat(), FakeImages(), states)
        first = run(workflow.create_session("u1", WorkMode.OHISAMA)).session
        run(workflow.proceed_to_next(first.id))
        assert len(states) == 1

    def test_update_title_and_completion(self, workflow, repo):
        session = run(workflow.create_session("u1", WorkMode.OHISAMA)).session
        result = run(workflow.update_session(session.id, title="Renamed", is_completed=True))
        assert repo.sessions[session.id].title == "Renamed"
        assert result.session.is_completed is True


class TestProposalRoundTrip:
    def test_full_ohisama_round_trip(self):
        workflow, repo, chat, images = _controller(
            replies=[PROPOSALS_REPLY, IMAGE_REPLY, EQUIPMENT_REPLY],
            image_results=["aW1hZ2U="],
        )
        session_id = run(workflow.create_session("u1", WorkMode.OHISAMA)).session.id

        result = run(workflow.send_message(session_id, "Please style this bread"))
        assert result.state.phase is Phase.PROPOSALS_SHOWN
        assert [p.id for p in result.state.proposals] == ["1", "2"]
        assert _roles(result.session) == [MessageRole.USER, MessageRole.ASSISTANT]
        assert "```" not in result.session.messages[-1].content

        result = run(workflow.select_proposal(session_id, "1"))
        assert result.state.show_proposal_confirmation is True
        assert len(result.session.messages) == 2

        result = run(workflow.confirm_proposal(session_id))
        session, state = result.session, result.state
        assert session.title == "Rustic Board"
        assert session.products[0].name == "Rustic Board"
        assert session.products[0].selected_proposal.id == "1"
        assert session.messages[2].content == "Proposal 1 (Rustic Board), please. This is fine as it is."
        assert session.messages[3].content == "Great choice."
        assert state.pending_image_prompt == "bread on a rustic board"
        assert state.phase is Phase.IMAGE_PENDING

        result = run(workflow.generate_image(session_id))
        session, state = result.session, result.state
        assert len(session.messages) == 5
        assert session.messages[-1].content == messages.IMAGE_READY
        assert session.messages[-1].generated_image_url == "/images/1"
        assert session.products[0].generated_image_url == "/images/1"
        assert state.pending_image_prompt is None
        assert state.show_image_confirmation is True
        assert chat.prompts == ["bread on a rustic board"]

        result = run(workflow.confirm_image(session_id))
        assert result.session.messages[5].content == messages.IMAGE_CONFIRMED
        assert result.state.phase is Phase.EQUIPMENT_SHOWN
        assert result.state.show_image_confirmation is False
        assert repo.sessions[session_id].messages == result.session.messages

    def test_auto_generate_on_confirmation(self):
        workflow, _, chat, _ = _controller(replies=[PROPOSALS_REPLY, IMAGE_REPLY])
        session_id = run(workflow.create_session("u1", WorkMode.OHISAMA)).session.id
        run(workflow.send_message(session_id, "bread"))
        run(workflow.select_proposal(session_id, "2"))
        result = run(workflow.confirm_proposal(session_id, auto_generate=True))
        assert result.session.messages[-1].content == messages.IMAGE_READY
        assert result.state.pending_image_prompt is None
        assert chat.prompts == ["bread on a rustic board"]

    def test_confirm_without_selection(self, workflow):
        session_id = run(workflow.create_session("u1", WorkMode.OHISAMA)).session.id
        with pytest.raises(ValueError):
            run(workflow.confirm_proposal(session_id))

    def test_user_image_is_stored_and_sent(self):
        workflow, _, chat, images = _controller(replies=["Nice photo"])
        session_id = run(workflow.create_session("u1", WorkMode.OHISAMA)).session.id
        upload = ImageUpload(base64="aW1n", data=b"img", mime_type="image/png")
        result = run(workflow.send_message(session_id, "Here is my bread", upload))
        assert result.session.messages[0].image_url == "/images/1"
        assert images.saved[0]["kind"] == "upload"
        turns, mode = chat.turns[0]
        assert turns[-1].image_base64 == "aW1n"
        assert mode is WorkMode.OHISAMA

    def test_empty_message_is_rejected(self, workflow):
        session_id = run(workflow.create_session("u1", WorkMode.OHISAMA)).session.id
        with pytest.raises(ValueError):
            run(workflow.send_message(session_id, "   "))

    def test_revision_request_text(self):
        workflow, _, chat, _ = _controller(replies=["Sure"])
        session_id = run(workflow.create_session("u1", WorkMode.OHISAMA)).session.id
        result = run(workflow.request_image_revision(session_id, "color", "warmer please"))
        assert result.session.messages[0].content == "Please change the colour tone: warmer please"
        with pytest.raises(ValueError):
            run(workflow.request_image_revision(session_id, "font"))


class TestImageFailures:
    def _pending(self, image_results):
        workflow, repo, chat, images = _controller(replies=[IMAGE_REPLY], image_results=image_results)
        session_id = run(workflow.create_session("u1", WorkMode.OHISAMA)).session.id
        run(workflow.send_message(session_id, "make an image"))
        return workflow, session_id

    def test_declined_image_clears_prompt(self):
        workflow, session_id = self._pending([None])
        result = run(workflow.generate_image(session_id))
        assert result.session.messages[-1].content == messages.IMAGE_FAILED
        assert result.state.pending_image_prompt is None
        assert result.state.phase is Phase.WAITING
        with pytest.raises(ValueError):
            run(workflow.generate_image(session_id))

    def test_rate_limited_image_reports_busy(self):
        workflow, session_id = self._pending([RateLimitExhausted("429")])
        result = run(workflow.generate_image(session_id))
        assert result.session.messages[-1].content == "Image generation error: " + messages.SERVICE_BUSY
        assert result.state.pending_image_prompt is None

    def test_generate_without_prompt(self, workflow):
        session_id = run(workflow.create_session("u1", WorkMode.OHISAMA)).session.id
        with pytest.raises(ValueError):
            run(workflow.generate_image(session_id))


class TestChatFailures:
    def test_missing_key_is_reported_in_chat(self):
        workflow, _, _, _ = _controller(replies=[ConfigurationError("no key")])
        session_id = run(workflow.create_session("u1", WorkMode.OHISAMA)).session.id
        result = run(workflow.send_message(session_id, "hello"))
        assert result.session.messages[-1].role is MessageRole.ASSISTANT
        assert result.session.messages[-1].content == "An error occurred: " + messages.MISSING_API_KEY
        assert result.state.phase is Phase.WAITING

    def test_persistence_failure_is_reported_in_chat(self):
        workflow, repo, chat, _ = _controller(replies=["never sent"])
        session_id = run(workflow.create_session("u1", WorkMode.OHISAMA)).session.id
        repo.fail_upserts = True
        result = run(workflow.send_message(session_id, "hello"))
        assert result.session.messages[-1].content == "An error occurred: disk I/O error"
        assert chat.turns == []


class TestCoopLetter:
    def test_dish_flow_through_layout(self):
        replies = [
            "Seasonal picks:\n" + fenced(
                {
                    "action": "dish_selection",
                    "theme": "Autumn Harvest",
                    "dishList": [{"id": "d1", "name": "Pumpkin Soup"}, {"id": "d2", "name": "Chestnut Rice"}],
                }
            ),
            "Locked in.\n" + fenced(
                {
                    "action": "dishes_confirmed",
                    "selectedDishes": [{"order": 1, "id": "d1", "name": "Pumpkin Soup"}, {"order": 2, "id": "d2", "name": "Chestnut Rice"}],
                }
            ),
            fenced({"action": "generate_image", "prompt": "pumpkin soup"}),
            fenced({"action": "generate_image", "prompt": "chestnut rice"}),
            "Cover time.\n" + fenced({"action": "generate_layout", "prompt": "autumn cover"}),
            "All done.\n" + fenced({"action": "summary", "summary": {"table": [], "shoppingList": ["Pumpkin"]}}),
        ]
        workflow, _, chat, _ = _controller(replies=replies, image_results=["c291cA==", "cmljZQ==", "Y292ZXI="])
        session = run(workflow.create_session("u1", WorkMode.COOP_LETTER)).session

        result = run(workflow.send_message(session.id, "Autumn letter please"))
        assert result.session.title == "Autumn Harvest"
        assert result.session.theme == "Autumn Harvest"
        assert result.state.phase is Phase.DISH_OPTIONS_SHOWN

        result = run(workflow.select_dishes(session.id, ["d1", "d2"]))
        assert result.session.messages[2].content == "I choose d1, d2"
        assert result.state.current_dish.name == "Pumpkin Soup"

        run(workflow.send_message(session.id, "Start with the first dish"))
        result = run(workflow.generate_image(session.id))
        assert result.state.show_image_confirmation is False
        assert [d.name for d in result.state.dish_images] == ["Pumpkin Soup"]

        result = run(workflow.next_dish(session.id))
        assert result.session.messages[-2].content == messages.NEXT_DISH
        assert result.state.current_dish.name == "Chestnut Rice"
        result = run(workflow.generate_image(session.id))
        assert [d.order for d in result.state.dish_images] == [1, 2]

        result = run(workflow.next_dish(session.id))
        assert messages.FINAL_LAYOUT in [m.content for m in result.session.messages]
        assert result.session.messages[-1].content == messages.LAYOUT_READY
        assert result.state.phase is Phase.LAYOUT_SHOWN
        assert result.state.layout_image_url == "/images/3"
        assert chat.prompts[-1] == "autumn cover"

        result = run(workflow.confirm_layout(session.id))
        assert result.state.phase is Phase.COMPLETED
        assert result.state.summary.shopping_list == ("Pumpkin",)

    def test_select_dishes_requires_ids(self, workflow):
        session_id = run(workflow.create_session("u1", WorkMode.COOP_LETTER)).session.id
        with pytest.raises(ValueError):
            run(workflow.select_dishes(session_id, []))

    def test_layout_request_after_image_confirmation(self):
        layout = "Now the cover.\n" + fenced({"action": "generate_layout", "prompt": "autumn cover"})
        workflow, _, chat, _ = _controller(replies=[layout], image_results=["Y292ZXI="])
        session_id = run(workflow.create_session("u1", WorkMode.COOP_LETTER)).session.id

        result = run(workflow.confirm_image(session_id))
        assert result.session.messages[-1].content == messages.LAYOUT_READY
        assert result.state.phase is Phase.LAYOUT_SHOWN
        assert chat.prompts == ["autumn cover"]

    def test_layout_request_after_revision(self):
        layout = fenced({"action": "generate_layout", "prompt": "warm cover"})
        workflow, _, chat, _ = _controller(replies=[layout])
        session_id = run(workflow.create_session("u1", WorkMode.COOP_LETTER)).session.id

        result = run(workflow.request_image_revision(session_id, "color"))
        assert result.state.layout_image_url == "/images/1"
        assert chat.prompts == ["warm cover"]

    def test_layout_is_never_generated_in_ohisama(self):
        layout = fenced({"action": "generate_layout", "prompt": "cover"})
        workflow, _, chat, _ = _controller(replies=[layout])
        session_id = run(workflow.create_session("u1", WorkMode.OHISAMA)).session.id

        result = run(workflow.confirm_image(session_id))
        assert chat.prompts == []
        assert result.state.layout_image_url is None
