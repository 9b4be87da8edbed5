"""
Test progress presentation.
"""
from app.core.statuses import GenerationPhase
from app.workflow.display import ProgressView, progress_view
from app.workflow.models import WorkflowArticle, normalize_article


def _article(**fields) -> WorkflowArticle:
    fields.setdefault("status", "generating")
    return WorkflowArticle(id=1, title="Card", **fields)


def test_generating_in_writing_phase():
    article = _article(generation_progress=45, generation_phase=GenerationPhase.WRITING)
    assert progress_view(article) == ProgressView(45, "Writing")


def test_generating_before_first_phase():
    assert progress_view(_article(generation_progress=0)) == ProgressView(0, "Starting")


def test_failed_generation():
    article = _article(status="failed", generation_progress=30, generation_error="boom")
    assert progress_view(article) == ProgressView(30, "Failed")


def test_finished_generation():
    assert progress_view(_article(status="wait_for_publish", generation_progress=100)) == ProgressView(100, "Complete")


def test_idea_has_no_label():
    assert progress_view(_article(status="idea")) == ProgressView(0, None)


def test_progress_is_clamped_on_load():
    article = normalize_article({"id": 1, "title": "Over", "status": "generating", "generationProgress": 140})
    assert article.generation_progress == 100


def test_normalize_derives_phase_and_corrects_status():
    article = normalize_article({
        "id": 2,
        "title": "Done",
        "status": "generating",
        "generationStatus": "completed",
        "generationProgress": 100,
        "keywords": None,
    })
    assert article.status == "wait_for_publish"
    assert article.generation_phase is None
    assert article.keywords == []

    article = normalize_article({
        "id": 3,
        "title": "Busy",
        "status": "generating",
        "generationStatus": "validating",
        "generationProgress": 80,
    })
    assert article.generation_phase == GenerationPhase.VALIDATION
    assert progress_view(article) == ProgressView(80, "Validation")
