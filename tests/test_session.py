import pytest

from lookbook.api.base import Artifact
from lookbook.context.session import SCENE_COUNT, Scene, Session, Stage, describe_artifact


@pytest.fixture
def session():
    return Session()


def test_new_session(session):
    assert session.stage is Stage.UPLOAD
    assert [scene.id for scene in session.scenes] == list(range(SCENE_COUNT))
    assert all(scene == Scene(id=scene.id) for scene in session.scenes)
    assert session.extraction_progress == 0
    assert not session.has_scene_images()


def test_update_scene_touches_only_that_scene(session, model_image):
    before = session.scenes

    updated = session.update_scene(3, image=model_image)

    assert updated.image == model_image
    assert session.scene(3) is updated
    assert before[3].image is None
    for i in range(SCENE_COUNT):
        if i != 3:
            assert session.scene(i) is before[i]
    assert session.has_scene_images()


def test_update_scene_rejects_unknown_fields(session):
    with pytest.raises(AttributeError):
        session.update_scene(0, id=5)
    with pytest.raises(AttributeError):
        session.update_scene(0, caption="hello")


def test_scene_id_out_of_range(session):
    with pytest.raises(IndexError):
        session.scene(SCENE_COUNT)
    with pytest.raises(IndexError):
        session.update_scene(-1, is_extracting=True)


def test_scene_is_busy(session):
    assert not session.scene(0).is_busy
    assert session.update_scene(0, is_upscaling=True).is_busy
    assert session.update_scene(1, is_generating_video=True).is_busy


def test_running_scene_tasks_ignores_extraction(session):
    session.update_scene(1, is_extracting=True)
    session.update_scene(7, is_upscaling=True)
    session.update_scene(2, is_generating_video=True)

    assert session.running_scene_tasks() == [2, 7]


def test_extraction_progress_is_monotonic(session):
    session.set_extraction_progress(11)
    session.set_extraction_progress(11)
    session.set_extraction_progress(56)

    with pytest.raises(ValueError):
        session.set_extraction_progress(44)
    with pytest.raises(ValueError):
        session.set_extraction_progress(101)
    assert session.extraction_progress == 56


def test_begin_extraction_clears_scenes_and_progress(session, model_image):
    session.update_scene(2, image=model_image, video_url=Artifact("https://v/1.mp4", "video/mp4"))
    session.set_extraction_progress(100)

    session.begin_extraction()

    assert session.extraction_progress == 0
    assert all(scene == Scene(id=scene.id) for scene in session.scenes)
    session.set_extraction_progress(11)


def test_set_stage(session):
    session.set_stage(Stage.REFINE)
    assert session.stage is Stage.REFINE


def test_to_dict_does_not_copy_inline_payloads(session, model_image):
    session.set_model_image(model_image)
    session.update_scene(0, image=model_image, video_url=Artifact("https://v/clip.mp4", "video/mp4"))

    data = session.to_dict()

    assert data["stage"] == "upload"
    assert data["model_image"] == "inline:image/png"
    assert data["product_image"] is None
    assert data["scenes"][0]["image"] == "inline:image/png"
    assert data["scenes"][0]["video_url"] == "https://v/clip.mp4"
    assert data["scenes"][1]["is_extracting"] is False
    assert model_image.base64_data not in str(data)


def test_describe_artifact():
    assert describe_artifact(None) is None
    assert describe_artifact(Artifact.from_bytes(b"x", "image/jpeg")) == "inline:image/jpeg"
