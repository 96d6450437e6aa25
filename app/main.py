from fastapi import FastAPI, UploadFile, File, Form, HTTPException, Depends, Request
from fastapi.responses import Response
from fastapi.security.api_key import APIKeyHeader
import io, os, json, logging, time
from typing import Optional, Dict, Any, List

from PIL import Image as PILImage
from prometheus_fastapi_instrumentator import Instrumentator
from pydantic import BaseModel

from uploadprep.config import PipelineConfig
from uploadprep.context import ProcessingContext
from uploadprep.errors import DecodeError, EncodeError
from uploadprep.image import DecodedImage, EncodedImage, to_encoded
from uploadprep.metrics import summarize
from uploadprep.pipeline import ImagePipeline
from uploadprep.profiles import describe_profiles, load_profile

API_KEY_NAME = "x-api-key"
api_key_header = APIKeyHeader(name=API_KEY_NAME, auto_error=False)

# Upload size cap in bytes (env configurable)
MAX_UPLOAD_BYTES = int(os.getenv("UPLOADPREP_MAX_UPLOAD_BYTES", str(50 * 1024 * 1024)))


def get_api_key(api_key: str = Depends(api_key_header)):
    expected = os.environ.get("API_KEY")
    if not expected:
        # auth disabled when no key is configured (dev)
        return None
    if api_key is None:
        raise HTTPException(status_code=401, detail="Missing API key")
    if api_key != expected:
        raise HTTPException(status_code=403, detail="Forbidden")
    return api_key


app = FastAPI(
    title="Upload Prep",
    version=os.getenv("APP_VERSION", "0.1.0"),
    description="Normalize uploaded images: orientation, size limits, output format.",
)

logger = logging.getLogger("uploadprep.http")
handler = logging.StreamHandler()
handler.setFormatter(
    logging.Formatter(
        "%(asctime)s %(levelname)s path=%(path)s method=%(method)s status=%(status)s duration_ms=%(duration_ms)s msg=%(message)s"
    )
)
logger.addHandler(handler)
logger.setLevel(logging.INFO)
logger.propagate = False


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    dur = (time.time() - start) * 1000
    logger.info(
        "request",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status": response.status_code,
            "duration_ms": round(dur, 2),
        },
    )
    return response


Instrumentator().instrument(app).expose(app, endpoint="/metrics")


@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.get("/version")
def version():
    return {
        "version": os.getenv("APP_VERSION", "0.1.0"),
        "git": os.getenv("GIT_SHA", "unknown"),
    }


class ProfileSummary(BaseModel):
    name: str
    description: Optional[str] = None
    pipeline: Dict[str, Any]


class ProfilesResponse(BaseModel):
    profiles: List[str]
    details: List[ProfileSummary]


@app.get("/v1/profiles", response_model=ProfilesResponse)
def profiles(_api_key: str = Depends(get_api_key)):
    details = [ProfileSummary(**d) for d in describe_profiles()]
    return ProfilesResponse(profiles=[d.name for d in details], details=details)


def _resolve_config(profile: str, params_json: Optional[str]) -> PipelineConfig:
    try:
        prof = load_profile(profile)
    except FileNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"invalid profile: {e}")

    # profile values, then form overrides (nested 'target' merged key by key)
    params: Dict[str, Any] = dict(prof.get("pipeline", {}))
    if params_json:
        try:
            user_params = json.loads(params_json)
        except json.JSONDecodeError as e:
            raise HTTPException(status_code=400, detail=f"params_json is not valid JSON: {e}")
        if not isinstance(user_params, dict):
            raise HTTPException(status_code=400, detail="params_json must be an object")
        for k, v in user_params.items():
            params[k] = {**params.get(k, {}), **v} if isinstance(v, dict) else v

    try:
        return PipelineConfig.from_dict(params)
    except (TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"invalid pipeline parameters: {e}")


@app.post("/v1/preprocess")
async def preprocess_endpoint(
    file: UploadFile = File(...),
    profile: str = Form("default"),
    params_json: Optional[str] = Form(None),
    _api_key: str = Depends(get_api_key),
):
    cfg = _resolve_config(profile, params_json)
    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Empty upload")
    if len(data) > MAX_UPLOAD_BYTES:
        raise HTTPException(status_code=413, detail="Upload too large")

    ctx = ProcessingContext.default()
    image = EncodedImage(data, file.content_type or "application/octet-stream", name=file.filename)
    try:
        result, stages = await ImagePipeline(cfg, ctx).process_with_metrics(image)
        if isinstance(result, DecodedImage):
            # conversion disabled: ship the pixels losslessly
            result = await to_encoded(result, "image/png", ctx.codec)
    except DecodeError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except EncodeError as e:
        raise HTTPException(status_code=415, detail=str(e))

    try:
        with PILImage.open(io.BytesIO(result.data)) as pil:
            width, height = pil.size
    except (OSError, PILImage.DecompressionBombError) as e:
        raise HTTPException(status_code=422, detail=f"cannot decode image: {e}")
    summary = summarize(stages)
    headers = {
        "X-Image-Width": str(width),
        "X-Image-Height": str(height),
        "X-Processing-Ms": f"{summary['total_ms']:.2f}",
        "X-Profile": profile,
    }
    return Response(content=result.data, media_type=result.mime_type, headers=headers)


@app.get("/v1/health")
def health():
    return {"ok": True}
