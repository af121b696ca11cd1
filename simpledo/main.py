# simpledo/main.py

from datetime import date, timedelta
from typing import List
from fastapi import BackgroundTasks, Depends, FastAPI, File, HTTPException, Request, Response, Security, UploadFile, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader
from loguru import logger

from . import config
from .exceptions import ClipboardError, NothingToCopyError, SimpleDoError
from .logging_config import setup_logging
from .models import (
    CompletedUpdate,
    CopyResponse,
    PipelineRun,
    SearchRequest,
    SearchResponse,
    SourceImage,
    Task,
    TaskCreate,
    TaskOut,
    TaskUpdate,
    TaskView,
)
from .services.gemini import GeminiClient
from .services.image_utils import ClipboardItem, detect_mime_type, select_image_item
from .services.pipeline import ImageSearchPipeline
from .services.render import render_markdown
from .services.retry import with_retry
from .services.storage_service import LocalStorageService
from .services.task_views import VIEW_TITLES, apply_view, to_task_out
from .services.todo_store import TodoStore

setup_logging()

# --- Service Initialization ---
gemini_client = GeminiClient(
    api_key=config.GEMINI_API_KEY,
    model=config.GEMINI_MODEL,
    timeout=config.GEMINI_TIMEOUT,
)
todo_store = TodoStore(LocalStorageService(config.TODO_STORAGE_PATH))
image_pipeline = ImageSearchPipeline(
    client=gemini_client,
    max_attempts=config.RETRY_MAX_ATTEMPTS,
    preprocess=config.OCR_PREPROCESS,
)


def get_todo_store() -> TodoStore:
    return todo_store


def get_pipeline() -> ImageSearchPipeline:
    return image_pipeline


def get_gemini_client() -> GeminiClient:
    return gemini_client


# --- Security ---
api_key_header = APIKeyHeader(name="X-API-Key", auto_error=False)


def get_api_key(api_key: str = Security(api_key_header)):
    # Open access unless API_SECRET_KEY is configured
    if config.API_SECRET_KEY and api_key != config.API_SECRET_KEY:
        raise HTTPException(status_code=403, detail="Could not validate credentials")
    return api_key


# --- FastAPI Application ---
app = FastAPI(title="SimpleDo API")


@app.exception_handler(SimpleDoError)
async def simpledo_error_handler(request: Request, exc: SimpleDoError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.http_status}: {exc}")
    return JSONResponse(status_code=exc.http_status, content={"detail": str(exc)})


@app.get("/")
def read_root():
    return {"status": "ok", "message": "Welcome to the SimpleDo API!"}


# --- To-do list ---

@app.get("/todos", response_model=List[TaskOut], dependencies=[Depends(get_api_key)])
def list_todos(view: TaskView = TaskView.ALL_TASKS, store: TodoStore = Depends(get_todo_store)):
    tasks = apply_view(view, store.refresh())
    logger.debug(f"Listing {len(tasks)} task(s) for view '{VIEW_TITLES[view]}'")
    return [to_task_out(task) for task in tasks]


@app.post("/todos", response_model=TaskOut, status_code=status.HTTP_201_CREATED, dependencies=[Depends(get_api_key)])
def create_todo(payload: TaskCreate, store: TodoStore = Depends(get_todo_store)):
    today = date.today()
    max_date = today + timedelta(days=config.TODO_MAX_DAYS_AHEAD)
    if not today <= payload.due_date <= max_date:
        raise HTTPException(
            status_code=422,
            detail=f"Due date must be between {today.isoformat()} and {max_date.isoformat()}.",
        )

    task = Task(**payload.model_dump())
    store.add(task)
    store.refresh()
    return to_task_out(task, today)


@app.put("/todos/{task_id}", response_model=TaskOut, dependencies=[Depends(get_api_key)])
def update_todo(task_id: str, payload: TaskUpdate, store: TodoStore = Depends(get_todo_store)):
    task = Task(id=task_id, **payload.model_dump())
    if not store.update(task):
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    store.refresh()
    return to_task_out(task)


@app.patch("/todos/{task_id}/completed", response_model=TaskOut, dependencies=[Depends(get_api_key)])
def set_todo_completed(task_id: str, payload: CompletedUpdate, store: TodoStore = Depends(get_todo_store)):
    task = store.set_completed(task_id, payload.completed)
    if task is None:
        raise HTTPException(status_code=404, detail=f"Task {task_id} not found")
    store.refresh()
    return to_task_out(task)


@app.delete("/todos/{task_id}", status_code=status.HTTP_204_NO_CONTENT, dependencies=[Depends(get_api_key)])
def delete_todo(task_id: str, store: TodoStore = Depends(get_todo_store)):
    store.remove(task_id)
    store.refresh()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Image search ---

@app.post("/image-search/paste", response_model=PipelineRun, status_code=status.HTTP_202_ACCEPTED, dependencies=[Depends(get_api_key)])
def paste_image(
    background_tasks: BackgroundTasks,
    items: List[UploadFile] = File(...),
    pipeline: ImageSearchPipeline = Depends(get_pipeline),
):
    """
    Receives the items of a clipboard paste. The first image among them
    starts a new run, which supersedes any run still in progress.
    """
    clipboard = [ClipboardItem(mime_type=item.content_type or "", data=item.file.read()) for item in items]
    chosen = select_image_item(clipboard)
    if chosen is None:
        raise ClipboardError("No image found in the pasted content.")
    if not chosen.data:
        raise ClipboardError("Could not read image file from clipboard.")

    mime_type = detect_mime_type(chosen.data, declared=chosen.mime_type)
    image = SourceImage(data=chosen.data, mime_type=mime_type)
    run, token = pipeline.start(image)
    background_tasks.add_task(pipeline.execute, token, image)
    return run


@app.get("/image-search", response_model=PipelineRun, dependencies=[Depends(get_api_key)])
def current_run(pipeline: ImageSearchPipeline = Depends(get_pipeline)):
    return pipeline.snapshot()


@app.get("/image-search/preview/{preview_id}", dependencies=[Depends(get_api_key)])
def preview_image(preview_id: str, pipeline: ImageSearchPipeline = Depends(get_pipeline)):
    image = pipeline.previews.get(preview_id)
    if image is None:
        raise HTTPException(status_code=404, detail="Preview not found or already released")
    return Response(content=image.data, media_type=image.mime_type)


@app.post("/image-search/copy", response_model=CopyResponse, dependencies=[Depends(get_api_key)])
def copy_extracted_text(pipeline: ImageSearchPipeline = Depends(get_pipeline)):
    text = pipeline.snapshot().extracted_text
    if not text:
        raise NothingToCopyError("There is no extracted text to copy yet.")
    return CopyResponse(text=text, message="Text copied successfully!")


@app.delete("/image-search", response_model=PipelineRun, dependencies=[Depends(get_api_key)])
def reset_image_search(pipeline: ImageSearchPipeline = Depends(get_pipeline)):
    return pipeline.reset()


@app.post("/search", response_model=SearchResponse, dependencies=[Depends(get_api_key)])
def search(payload: SearchRequest, client: GeminiClient = Depends(get_gemini_client)):
    """
    Search mode: grounded web search on a typed query, without OCR.
    """
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=400, detail="Please enter a search query.")

    outcome = with_retry(
        lambda: client.grounded_search(query),
        max_attempts=config.RETRY_MAX_ATTEMPTS,
        label="perform search",
    )
    if not outcome.ok:
        raise HTTPException(status_code=502, detail=outcome.error)

    answer = outcome.value
    return SearchResponse(text=answer.text, html=render_markdown(answer.text), sources=answer.sources)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("simpledo.main:app", host="0.0.0.0", port=8000)
