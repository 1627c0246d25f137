import logging
from functools import lru_cache
from typing import List

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .config import configure_logging, get_settings
from .errors import SchoolNotFoundError
from .models import GenerationResult, Placement, SchoolSnapshot
from .samples import build_sample_school
from .service import TimetableService
from .store import InMemoryTimetableStore

configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Timetable Generation API")

# CORS setup (simplified for dev)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class GenerationOptions(BaseModel):
    regenerate: bool = False
    incremental: bool = False


@lru_cache()
def get_service() -> TimetableService:
    return TimetableService(InMemoryTimetableStore(), get_settings())


def _run(call, *args, **kwargs) -> GenerationResult:
    try:
        return call(*args, **kwargs)
    except SchoolNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=f"Generation Error: {ve}")
    except Exception as e:
        logger.exception("Generation failed")
        raise HTTPException(status_code=500, detail=f"Internal Server Error: {e}")


@app.put("/schools/{school_id}/snapshot")
def put_snapshot(school_id: str, snapshot: SchoolSnapshot, service: TimetableService = Depends(get_service)):
    if snapshot.school_id != school_id:
        raise HTTPException(status_code=400, detail="school_id in the body does not match the path")
    try:
        with service.store.lock(school_id):
            service.store.put(snapshot)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))
    return {"school_id": school_id, "placements": len(snapshot.placements)}


@app.post("/schools/{school_id}/generate", response_model=GenerationResult)
def generate_school(school_id: str, service: TimetableService = Depends(get_service)):
    return _run(service.generate_timetable, school_id)


@app.post("/schools/{school_id}/classes/{class_id}/generate", response_model=GenerationResult)
def generate_class(
    school_id: str,
    class_id: str,
    options: GenerationOptions = GenerationOptions(),
    service: TimetableService = Depends(get_service),
):
    return _run(
        service.generate_timetable_for_class,
        school_id,
        class_id,
        regenerate=options.regenerate,
        incremental=options.incremental,
    )


@app.post("/schools/{school_id}/teachers/{teacher_id}/generate", response_model=GenerationResult)
def generate_teacher(
    school_id: str,
    teacher_id: str,
    options: GenerationOptions = GenerationOptions(),
    service: TimetableService = Depends(get_service),
):
    return _run(
        service.generate_timetable_for_teacher,
        school_id,
        teacher_id,
        incremental=options.incremental,
        regenerate=options.regenerate,
    )


@app.get("/schools/{school_id}/placements", response_model=List[Placement])
def list_placements(school_id: str, service: TimetableService = Depends(get_service)):
    try:
        return service.store.load(school_id).placements
    except SchoolNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@app.get("/")
def read_root():
    return {"message": "Timetable Generation API", "strategy": get_settings().strategy}


@app.get("/example", response_model=SchoolSnapshot)
def example_school(size: str = "small", seed: int = 0):
    try:
        return build_sample_school(size, seed)
    except ValueError as ve:
        raise HTTPException(status_code=400, detail=str(ve))
