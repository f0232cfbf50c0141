"""
FastAPI Web Application for Track Playback

This module provides a REST API for loading GPS tracks, authoring a journey
from tracks and transport legs, and driving timeline playback. All state
lives in one in-memory session for the lifetime of the process.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from trailplay import analyze_track
from trailplay import constants
from trailplay.analyze_track import (
    AnimationLoop,
    BackgroundParser,
    ParseError,
    Session,
    TransportMode,
    Waypoint,
)

logging.basicConfig(
    level=constants.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


# ============================================================================
# APPLICATION SETUP
# ============================================================================

# Process-wide session state (tracks, journey, playback)
session = Session()

parser: Optional[BackgroundParser] = None
animation: Optional[AnimationLoop] = None


def get_parser() -> BackgroundParser:
    """Create the background parser on first use."""
    global parser
    if parser is None:
        parser = BackgroundParser()
    return parser


def ensure_animation_loop() -> AnimationLoop:
    """
    Bind the animation loop to the running event loop.

    A loop bound to a different (e.g. closed) event loop is replaced.
    """
    global animation
    loop = asyncio.get_running_loop()
    if animation is None or animation.scheduler is not loop:
        if animation is not None:
            animation.close()
        animation = AnimationLoop(session.playback, loop)
    return animation


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    if animation is not None:
        animation.close()
    if parser is not None:
        await asyncio.to_thread(parser.shutdown)


app = FastAPI(lifespan=lifespan)


# ============================================================================
# REQUEST MODELS
# ============================================================================

class JourneyCreate(BaseModel):
    name: str = "My Journey"


class WaypointModel(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lon: float = Field(ge=-180, le=180)
    name: Optional[str] = None

    def to_waypoint(self) -> Waypoint:
        return Waypoint(lat=self.lat, lon=self.lon, name=self.name)


class TrackSegmentCreate(BaseModel):
    track_id: str
    duration: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class TransportSegmentCreate(BaseModel):
    mode: TransportMode
    origin: WaypointModel
    destination: WaypointModel
    duration: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)


class SegmentUpdate(BaseModel):
    duration: Optional[float] = Field(default=None, ge=0, allow_inf_nan=False)
    position: Optional[int] = None


class SeekRequest(BaseModel):
    time_ms: float = Field(allow_inf_nan=False)


class ProgressRequest(BaseModel):
    progress: float = Field(allow_inf_nan=False)


class SpeedRequest(BaseModel):
    speed: float = Field(allow_inf_nan=False)


class SkipRequest(BaseModel):
    seconds: float = Field(default=constants.DEFAULT_SKIP_SECONDS, allow_inf_nan=False)


# ============================================================================
# HELPERS
# ============================================================================

def lookup_track(track_id: str):
    try:
        return session.get_track(track_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Track not found: {track_id}") from exc


def parse_error_response(exc: ParseError) -> HTTPException:
    return HTTPException(status_code=422, detail=exc.to_dict())


def track_summary(track) -> dict:
    summary = analyze_track.track_to_payload(track, include_points=False)
    summary["active"] = track.id == session.active_track_id
    return summary


def playback_response() -> dict:
    return session.playback_snapshot()


# ============================================================================
# API ROUTES - DATASETS & TRACKS
# ============================================================================

@app.get("/api/datasets")
def get_datasets():
    """
    Get list of available GPX datasets.

    Returns:
        List of dictionaries with 'filename' and 'display_name' keys.
    """
    return analyze_track.list_datasets(constants.DATA_DIR)


@app.post("/api/tracks", status_code=201)
async def upload_track(
    request: Request,
    name: Optional[str] = Query(None, description="File name used when the GPX has no name"),
    seed: Optional[int] = Query(None, description="Seed for synthetic speeds"),
):
    """
    Parse a GPX document sent as the request body and add it to the session.

    Returns:
        Track payload including points.

    Raises:
        HTTPException: 422 if the GPX cannot be parsed.
    """
    content = (await request.body()).decode("utf-8", errors="replace")
    try:
        track = await get_parser().parse_async(content, name=name, seed=seed)
    except ParseError as exc:
        raise parse_error_response(exc) from exc

    session.add_track(track)
    return analyze_track.track_to_payload(track)


@app.post("/api/datasets/{filename}/load", status_code=201)
async def load_dataset(filename: str, seed: Optional[int] = Query(None)):
    """
    Parse a GPX file from the data directory and add it to the session.

    Raises:
        HTTPException: 404 if the file does not exist, 422 if it cannot be parsed.
    """
    data_file = constants.DATA_DIR / filename
    if data_file.suffix.lower() != ".gpx" or data_file.name != filename or not data_file.exists():
        raise HTTPException(status_code=404, detail=f"Dataset file not found: {filename}")

    logger.info("Loading dataset %s", filename)
    content = analyze_track.load_gpx_file(data_file)
    try:
        track = await get_parser().parse_async(content, name=filename, seed=seed)
    except ParseError as exc:
        raise parse_error_response(exc) from exc

    session.add_track(track)
    return analyze_track.track_to_payload(track)


@app.get("/api/tracks")
def list_tracks():
    """Summaries (without points) of all loaded tracks."""
    return [track_summary(track) for track in session.list_tracks()]


@app.get("/api/tracks/{track_id}")
def get_track(track_id: str):
    return analyze_track.track_to_payload(lookup_track(track_id))


@app.get("/api/tracks/{track_id}/geojson")
def get_track_geojson(track_id: str):
    return analyze_track.track_to_geojson(lookup_track(track_id))


@app.get("/api/tracks/{track_id}/export.csv")
def export_track(track_id: str, kind: str = Query("points", pattern="^(points|segments)$")):
    """
    Export a track's points or activity segments as CSV.

    Returns:
        PlainTextResponse: CSV file with Content-Disposition header.
    """
    track = lookup_track(track_id)
    if kind == "segments":
        body = analyze_track.export_activity_segments_csv(track)
    else:
        body = analyze_track.export_track_csv(track)

    headers = {"Content-Disposition": f"attachment; filename={track_id}_{kind}.csv"}
    return PlainTextResponse(body, media_type="text/csv", headers=headers)


@app.delete("/api/tracks/{track_id}", status_code=204)
async def delete_track(track_id: str):
    lookup_track(track_id)
    session.remove_track(track_id)


@app.put("/api/tracks/active/{track_id}")
async def set_active_track(track_id: str):
    lookup_track(track_id)
    session.set_active_track(track_id)
    return playback_response()


# ============================================================================
# API ROUTES - JOURNEY
# ============================================================================

def require_journey():
    if session.journey is None:
        raise HTTPException(status_code=404, detail="No journey")


@app.get("/api/journey")
def get_journey():
    """Journey definition plus its elevation profile."""
    require_journey()
    payload = session.journey_payload()
    payload["elevation_profile"] = session.playback.timeline.elevation_profile()
    return payload


@app.post("/api/journey", status_code=201)
async def create_journey(body: JourneyCreate):
    session.create_journey(body.name)
    return session.journey_payload()


@app.delete("/api/journey", status_code=204)
async def clear_journey():
    session.clear_journey()


@app.post("/api/journey/segments/track", status_code=201)
async def add_track_segment(body: TrackSegmentCreate):
    require_journey()
    lookup_track(body.track_id)
    session.add_track_segment(body.track_id, body.duration)
    return session.journey_payload()


@app.post("/api/journey/segments/transport", status_code=201)
async def add_transport_segment(body: TransportSegmentCreate):
    require_journey()
    session.add_transport_segment(
        body.mode,
        body.origin.to_waypoint(),
        body.destination.to_waypoint(),
        body.duration,
    )
    return session.journey_payload()


@app.patch("/api/journey/segments/{segment_id}")
async def update_segment(segment_id: str, body: SegmentUpdate):
    """Change a segment's duration (ms) and/or move it to a new position."""
    require_journey()
    try:
        if body.duration is not None:
            session.update_segment_duration(segment_id, body.duration)
        if body.position is not None:
            session.move_segment(segment_id, body.position)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Journey segment not found: {segment_id}") from exc
    return session.journey_payload()


@app.delete("/api/journey/segments/{segment_id}")
async def delete_segment(segment_id: str):
    require_journey()
    try:
        session.remove_segment(segment_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Journey segment not found: {segment_id}") from exc
    return session.journey_payload()


# ============================================================================
# API ROUTES - PLAYBACK
# ============================================================================

@app.get("/api/playback")
async def get_playback():
    """Current playback state, position, bearing and completed trail."""
    return playback_response()


@app.post("/api/playback/play")
async def play():
    ensure_animation_loop()
    session.playback.play()
    return playback_response()


@app.post("/api/playback/pause")
async def pause():
    ensure_animation_loop()
    session.playback.pause()
    return playback_response()


@app.post("/api/playback/toggle")
async def toggle():
    ensure_animation_loop()
    session.playback.toggle()
    return playback_response()


@app.post("/api/playback/restart")
async def restart():
    ensure_animation_loop()
    session.playback.restart()
    return playback_response()


@app.post("/api/playback/seek")
async def seek(body: SeekRequest):
    ensure_animation_loop()
    try:
        session.playback.seek(body.time_ms)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return playback_response()


@app.post("/api/playback/seek-progress")
async def seek_progress(body: ProgressRequest):
    ensure_animation_loop()
    try:
        session.playback.seek_to_progress(body.progress)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return playback_response()


@app.post("/api/playback/skip-forward")
async def skip_forward(body: SkipRequest):
    ensure_animation_loop()
    session.playback.skip_forward(body.seconds)
    return playback_response()


@app.post("/api/playback/skip-backward")
async def skip_backward(body: SkipRequest):
    ensure_animation_loop()
    session.playback.skip_backward(body.seconds)
    return playback_response()


@app.post("/api/playback/speed")
async def set_speed(body: SpeedRequest):
    ensure_animation_loop()
    try:
        session.playback.set_speed(body.speed)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return playback_response()


# ============================================================================
# RUN INSTRUCTIONS
# ============================================================================
# Run with: uvicorn app:app --reload
