"""Tests for the outline lifecycle controller."""

import pytest
import requests
from fihris.generation.client import (
    GenerationParams,
    ValidationError,
    TransportError,
    UpstreamUnavailableError,
    MalformedPayloadError,
    UPSTREAM_ERROR_SENTINEL,
)
from fihris.lifecycle import (
    IndexController,
    LifecycleState,
    InvalidTransitionError,
    RegenerationInProgressError,
)
from fihris.outline import IndexDocument
from fihris.quality import score_outline
from fihris.storage import StorageError, DOCUMENT_KEY


NEW_OUTLINE = "1. مقدمة جديدة\n1.1 تحليل البيانات\n2. خاتمة"


@pytest.fixture
def params():
    return GenerationParams(title="تأثير الذكاء الاصطناعي على العملية التعليمية", pages=12)


@pytest.fixture
def controller(store, client):
    return IndexController(store, client)


@pytest.fixture
def viewing(controller, store, sample_payload, params):
    """Controller with a stored outline loaded."""
    store.save_document(IndexDocument.from_dict(sample_payload))
    store.save_params(params.to_dict())
    assert controller.load()
    return controller


class TestLoad:
    """Tests for opening stored outlines."""

    def test_nothing_stored(self, controller):
        assert controller.load() is False
        assert controller.state == LifecycleState.UNLOADED
        assert controller.document is None

    def test_corrupt_record_stays_unloaded(self, controller, store):
        store.state_dir.mkdir(parents=True)
        (store.state_dir / f"{DOCUMENT_KEY}.json").write_text("{not json", encoding='utf-8')

        assert controller.load() is False
        assert controller.state == LifecycleState.UNLOADED

    def test_loaded_outline_is_scored(self, viewing, sample_outline):
        assert viewing.state == LifecycleState.VIEWING
        assert viewing.document.raw_text == sample_outline
        assert viewing.scores == score_outline(sample_outline)

    def test_load_twice_rejected(self, viewing):
        with pytest.raises(InvalidTransitionError):
            viewing.load()


class TestEditing:
    """Tests for begin_edit / cancel_edit / save."""

    def test_begin_edit_snapshots_text(self, viewing, sample_outline):
        draft = viewing.begin_edit()

        assert viewing.state == LifecycleState.EDITING
        assert draft == sample_outline
        assert viewing.draft == sample_outline

    def test_begin_edit_is_idempotent(self, viewing):
        viewing.begin_edit()
        viewing.update_draft("مسودة")

        assert viewing.begin_edit() == "مسودة"
        assert viewing.state == LifecycleState.EDITING

    def test_begin_edit_requires_document(self, controller):
        with pytest.raises(InvalidTransitionError):
            controller.begin_edit()

    def test_update_draft_outside_edit_rejected(self, viewing):
        with pytest.raises(InvalidTransitionError):
            viewing.update_draft("x")

    def test_cancel_leaves_committed_document(self, viewing, store):
        before = viewing.document
        scores_before = viewing.scores

        viewing.begin_edit()
        viewing.update_draft("نص مختلف تماما")
        viewing.cancel_edit()

        assert viewing.state == LifecycleState.VIEWING
        assert viewing.draft is None
        assert viewing.document == before
        assert viewing.scores == scores_before
        assert store.load_document() == before

    def test_cancel_outside_edit_rejected(self, viewing):
        with pytest.raises(InvalidTransitionError):
            viewing.cancel_edit()

    def test_save_unchanged_draft(self, viewing):
        scores_before = viewing.scores

        viewing.begin_edit()
        assert viewing.save() is True

        assert viewing.state == LifecycleState.VIEWING
        assert viewing.scores == scores_before

    def test_save_commits_and_rescores(self, viewing, store, sample_payload):
        viewing.begin_edit()
        viewing.update_draft(NEW_OUTLINE)

        assert viewing.save() is True

        assert viewing.document.raw_text == NEW_OUTLINE
        assert viewing.scores == score_outline(NEW_OUTLINE)
        # Page breakdown and requirements are carried over
        assert viewing.document.estimated_pages == sample_payload['estimated_pages']

        stored = store.load_document()
        assert stored.raw_text == NEW_OUTLINE

    def test_save_keeps_memory_when_persistence_fails(self, viewing, store, monkeypatch):
        def failing_save(document):
            raise StorageError("disk full")

        monkeypatch.setattr(store, "save_document", failing_save)

        viewing.begin_edit()
        viewing.update_draft(NEW_OUTLINE)

        assert viewing.save() is False
        assert viewing.state == LifecycleState.VIEWING
        assert viewing.document.raw_text == NEW_OUTLINE
        assert viewing.scores == score_outline(NEW_OUTLINE)
        assert "disk full" in str(viewing.last_persistence_error)

    def test_save_outside_edit_rejected(self, viewing):
        with pytest.raises(InvalidTransitionError):
            viewing.save()


class TestRegeneration:
    """Tests for regenerate."""

    def test_success_replaces_document(self, viewing, fake_session, make_response, store, params):
        fake_session.queue(make_response(200, {'index': NEW_OUTLINE}))

        document = viewing.regenerate()

        assert viewing.state == LifecycleState.VIEWING
        assert viewing.document is document
        assert document.raw_text == NEW_OUTLINE
        # Replaced wholesale, nothing carried over from the old outline
        assert document.estimated_pages is None
        assert document.academic_requirements is None
        assert viewing.scores == score_outline(NEW_OUTLINE)
        assert store.load_document() == document
        assert fake_session.calls[-1]['json'] == params.to_dict()

    @pytest.mark.parametrize("response,error", [
        ("http_500", TransportError),
        ("upstream", UpstreamUnavailableError),
        ("malformed", MalformedPayloadError),
        ("connection", TransportError),
    ])
    def test_failure_keeps_previous_document(self, viewing, fake_session, make_response,
                                             store, response, error):
        responses = {
            "http_500": make_response(500, {'detail': 'boom'}),
            "upstream": make_response(200, {'index': UPSTREAM_ERROR_SENTINEL + ": refused"}),
            "malformed": make_response(200, {'outline': 'wrong field'}),
            "connection": requests.ConnectionError("refused"),
        }
        fake_session.queue(responses[response])
        before = viewing.document
        scores_before = viewing.scores

        with pytest.raises(error):
            viewing.regenerate()

        assert viewing.state == LifecycleState.VIEWING
        assert viewing.document == before
        assert viewing.scores == scores_before
        assert store.load_document() == before

    def test_interrupt_during_call_restores_viewing(self, viewing, fake_session, store):
        fake_session.queue(KeyboardInterrupt())
        before = viewing.document

        with pytest.raises(KeyboardInterrupt):
            viewing.regenerate()

        assert viewing.state == LifecycleState.VIEWING
        assert not viewing.is_busy
        assert viewing.document == before
        assert store.load_document() == before

    def test_success_clears_earlier_persistence_error(self, viewing, fake_session,
                                                       make_response, store, monkeypatch):
        def failing_save(document):
            raise StorageError("disk full")

        monkeypatch.setattr(store, "save_document", failing_save)
        viewing.begin_edit()
        assert viewing.save() is False
        assert viewing.last_persistence_error is not None

        monkeypatch.undo()
        fake_session.queue(make_response(200, {'index': NEW_OUTLINE}))
        viewing.regenerate()

        assert viewing.last_persistence_error is None

    def test_second_request_while_regenerating_rejected(self, store, make_response,
                                                        sample_payload, params):
        rejections = []

        class ReentrantSession:
            def post(self, url, json=None, headers=None, timeout=None):
                for attempt in (controller.regenerate, controller.begin_edit):
                    try:
                        attempt()
                    except RegenerationInProgressError as e:
                        rejections.append(e)
                assert controller.is_busy
                return make_response(200, {'index': NEW_OUTLINE})

        from fihris.generation.client import GenerationClient
        client = GenerationClient("http://localhost:8000/generate_index",
                                  session=ReentrantSession())
        controller = IndexController(store, client)
        store.save_document(IndexDocument.from_dict(sample_payload))
        store.save_params(params.to_dict())
        controller.load()

        controller.regenerate()

        assert len(rejections) == 2
        assert controller.state == LifecycleState.VIEWING
        assert controller.document.raw_text == NEW_OUTLINE

    def test_regenerate_while_editing_rejected(self, viewing, fake_session):
        viewing.begin_edit()

        with pytest.raises(InvalidTransitionError):
            viewing.regenerate()

        assert fake_session.calls == []
        assert viewing.state == LifecycleState.EDITING

    def test_regenerate_without_parameters(self, controller, store, sample_payload, fake_session):
        store.save_document(IndexDocument.from_dict(sample_payload))
        controller.load()

        with pytest.raises(ValidationError):
            controller.regenerate()

        assert fake_session.calls == []
        assert controller.state == LifecycleState.VIEWING


class TestCreate:
    """Tests for the creation flow."""

    def test_empty_title_rejected_without_request(self, controller, fake_session, store):
        with pytest.raises(ValidationError):
            controller.create(GenerationParams(title="   "))

        assert fake_session.calls == []
        assert store.load_params() is None
        assert controller.state == LifecycleState.UNLOADED

    def test_create_from_unloaded(self, controller, fake_session, make_response,
                                  sample_payload, store, params):
        fake_session.queue(make_response(200, sample_payload))

        document = controller.create(params)

        assert controller.state == LifecycleState.VIEWING
        assert document.academic_requirements.has_methodology is True
        assert store.load_params() == params.to_dict()
        assert store.load_document() == document

    def test_failed_create_returns_to_unloaded(self, controller, fake_session,
                                               make_response, store, params):
        fake_session.queue(make_response(503, {'detail': 'down'}))

        with pytest.raises(TransportError):
            controller.create(params)

        assert controller.state == LifecycleState.UNLOADED
        assert controller.document is None
        assert store.load_document() is None
        # Parameters are remembered for a later attempt
        assert store.load_params() == params.to_dict()

    def test_failed_params_write_stays_visible(self, controller, fake_session, make_response,
                                               sample_payload, store, params, monkeypatch):
        def failing_save(data):
            raise StorageError("disk full")

        monkeypatch.setattr(store, "save_params", failing_save)
        fake_session.queue(make_response(200, sample_payload))

        document = controller.create(params)

        # The document write succeeds afterwards but must not hide the params failure
        assert store.load_document() == document
        assert controller.last_persistence_error is not None
        assert "disk full" in str(controller.last_persistence_error)
        assert store.load_params() is None

    def test_create_while_editing_rejected(self, viewing, params):
        viewing.begin_edit()

        with pytest.raises(InvalidTransitionError):
            viewing.create(params)


class TestExportAndDiscard:
    """Tests for export and discard."""

    def test_export_committed_outline(self, viewing, sample_outline):
        artifact = viewing.export()

        assert artifact.filename == "فهرس_البحث.md"
        assert artifact.mime_type == "text/markdown"
        assert artifact.content.decode('utf-8') == f"# فهرس البحث\n\n{sample_outline}"
        assert viewing.state == LifecycleState.VIEWING

    def test_export_while_editing_rejected(self, viewing):
        viewing.begin_edit()
        viewing.update_draft("مسودة غير محفوظة")

        with pytest.raises(InvalidTransitionError):
            viewing.export()

    def test_export_after_cancel_uses_committed_text(self, viewing, sample_outline):
        viewing.begin_edit()
        viewing.update_draft("مسودة غير محفوظة")
        viewing.cancel_edit()

        content = viewing.export().content.decode('utf-8')

        assert "مسودة غير محفوظة" not in content
        assert sample_outline in content

    def test_discard_does_not_touch_storage(self, viewing, store):
        stored = store.load_document()
        viewing.begin_edit()
        viewing.update_draft("x")

        viewing.discard()

        assert viewing.state == LifecycleState.UNLOADED
        assert viewing.document is None
        assert viewing.draft is None
        assert store.load_document() == stored
