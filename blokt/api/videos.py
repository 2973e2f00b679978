import os
import logging
from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import FileResponse
from sqlalchemy.orm import Session
from blokt.db.session import get_db
from blokt.core.auth import get_current_user, create_signed_token, verify_signed_token
from blokt.core.config import VIDEO_URL_TTL_SECONDS
from blokt.models.models import Video, Task, User
from blokt.schemas.schemas import VideoCreate, VideoResponse, VideoDetail, AnalysisResult
from blokt.services import membership, storage, ai_service
from blokt.api.serializers import get_org_project, video_response, task_response

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["videos"])

STREAM_PURPOSE = "video-stream"


def _get_visible_video(db: Session, video_id: str, user: User) -> Video:
    video = db.query(Video).filter(Video.id == video_id).first()
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")
    if video.user_id != user.id:
        owner_org = video.owner.organization_id if video.owner else None
        if not user.organization_id or owner_org != user.organization_id:
            raise HTTPException(status_code=404, detail="Video not found")
    return video


def _tasks(db: Session, ids: list[str]) -> list[Task]:
    if not ids:
        return []
    found = {t.id: t for t in db.query(Task).filter(Task.id.in_(ids)).all()}
    return [found[i] for i in ids if i in found]


def playback_url(video: Video) -> str:
    if storage.is_remote_url(video.uri):
        return video.uri
    token = create_signed_token(video.id, STREAM_PURPOSE, VIDEO_URL_TTL_SECONDS)
    return f"/api/videos/{video.id}/stream?token={token}"


@router.get("/videos", response_model=list[VideoResponse])
def list_my_videos(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    videos = db.query(Video).filter(Video.user_id == user.id).order_by(Video.created_at.desc()).all()
    return [video_response(v) for v in videos]


@router.get("/projects/{project_id}/videos", response_model=list[VideoResponse])
def list_project_videos(project_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = get_org_project(db, project_id, user.organization_id)
    videos = db.query(Video).filter(Video.project_id == project.id).order_by(Video.created_at.desc()).all()
    return [video_response(v) for v in videos]


@router.post("/videos", response_model=VideoResponse)
def save_video_record(data: VideoCreate, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    uri = data.uri.strip()
    if not uri:
        raise HTTPException(status_code=400, detail="Video uri is required")
    if storage.local_path(uri) is None and not storage.is_remote_url(uri):
        raise HTTPException(status_code=400, detail="Video uri must be an upload path or an http(s) URL")
    if data.start and data.endtime and data.start > data.endtime:
        raise HTTPException(status_code=400, detail="Start time must be before end time")
    project_id = None
    if data.project_id:
        project_id = get_org_project(db, data.project_id, user.organization_id).id

    video = Video(
        uri=uri, file_name=data.file_name, file_size=data.file_size,
        user_id=user.id, project_id=project_id, start=data.start, endtime=data.endtime,
        task_ids=list(dict.fromkeys(data.task_ids)), ai_suggested_tasks=[],
    )
    db.add(video)
    db.commit()
    db.refresh(video)
    logger.info("saved video %s for user %s", video.id, user.id)
    return video_response(video)


@router.get("/videos/{video_id}", response_model=VideoDetail)
def get_video(video_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    video = _get_visible_video(db, video_id, user)
    return VideoDetail(
        **video_response(video).model_dump(),
        playback_url=playback_url(video),
        suggested_tasks=[task_response(t) for t in _tasks(db, video.ai_suggested_tasks or [])],
        tagged_tasks=[task_response(t) for t in _tasks(db, video.task_ids or [])],
    )


@router.get("/videos/{video_id}/stream")
def stream_video(video_id: str, token: str = Query(...), db: Session = Depends(get_db)):
    if not verify_signed_token(token, video_id, STREAM_PURPOSE):
        raise HTTPException(status_code=403, detail="Invalid or expired video link")
    video = db.query(Video).filter(Video.id == video_id).first()
    if not video:
        raise HTTPException(status_code=404, detail="Video not found")

    path = storage.local_path(video.uri)
    if path is None or not os.path.exists(path):
        raise HTTPException(status_code=404, detail="Video file not found")
    return FileResponse(path, filename=video.file_name or os.path.basename(path))


@router.delete("/videos/{video_id}")
def delete_video(video_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    video = _get_visible_video(db, video_id, user)
    removed = storage.remove_file(video.uri)
    db.delete(video)
    db.commit()
    logger.info("deleted video %s (file removed: %s)", video_id, removed)
    return {"ok": True}


@router.post("/videos/{video_id}/analyze", response_model=AnalysisResult)
def analyze_video(video_id: str, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Stage the tasks the AI considers completed on the video for human review."""
    video = _get_visible_video(db, video_id, user)

    try:
        annotations = ai_service.load_annotations()
    except (OSError, ValueError):
        logger.exception("could not load video annotations")
        raise HTTPException(status_code=500, detail="Failed to load video annotations")

    owner = video.owner or user
    tasks = membership.get_user_tasks(db, owner)
    if not tasks:
        raise HTTPException(status_code=400, detail="No tasks found for evaluation")

    task_dicts = [{"id": t.id, "name": t.name, "description": t.description} for t in tasks]
    try:
        suggested, used_fallback = ai_service.evaluate_task_completion(annotations, task_dicts)
    except ai_service.AIResponseError:
        logger.exception("unparseable AI response for video %s", video.id)
        raise HTTPException(status_code=502, detail="AI failed to format response correctly")

    valid_ids = {t.id for t in tasks}
    completed = [tid for tid in dict.fromkeys(suggested) if tid in valid_ids]
    video.ai_suggested_tasks = completed
    db.commit()
    logger.info("video %s: %d of %d tasks suggested complete", video.id, len(completed), len(tasks))
    return AnalysisResult(success=True, completed_task_ids=completed, used_fallback=used_fallback)
