import logging
import sys
from typing import List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from app.stream_splicer import (
    DEFAULT_CHUNK_SIZE,
    NotTextError,
    SpliceIOError,
    TextSplicer,
)

root = logging.getLogger()
root.setLevel(logging.DEBUG)

handler = logging.StreamHandler(sys.stdout)
handler.setLevel(logging.DEBUG)
formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
handler.setFormatter(formatter)
root.addHandler(handler)

logger = logging.getLogger(__name__)

SPLICE_PATH = "/splice"
# Ceiling on the per-request copy buffer; larger requests are rejected.
MAX_CHUNK_SIZE = 1024 * 1024

app = FastAPI()


class Insertion(BaseModel):
    offset: int = Field(ge=0)
    text: str


class SpliceRequest(BaseModel):
    origin: str
    insertions: List[Insertion] = []
    chunk_size: Optional[int] = Field(default=None, ge=1, le=MAX_CHUNK_SIZE)


@app.get("/")
async def read_root():
    return {
        "service": "stream-splicer",
        "splice_path": SPLICE_PATH,
        "default_chunk_size": DEFAULT_CHUNK_SIZE,
        "max_chunk_size": MAX_CHUNK_SIZE,
    }


@app.post(SPLICE_PATH)
async def splice(request: SpliceRequest):
    splicer = TextSplicer(
        request.origin, chunk_size=request.chunk_size or DEFAULT_CHUNK_SIZE
    )
    for insertion in request.insertions:
        splicer.insert(insertion.offset, insertion.text)

    try:
        text = splicer.execute()
    except NotTextError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except SpliceIOError as e:
        logger.error(f"Splice failed: {e}")
        raise HTTPException(status_code=500, detail="splice failed")

    content = text.encode("utf-8")
    headers = {
        "Content-Length": str(len(content)),
        # Every request splices afresh, nothing is worth caching.
        "Cache-Control": "no-cache, no-store, must-revalidate",
        "Pragma": "no-cache",
        "Expires": "0",
    }

    return Response(
        content=content, media_type="text/plain; charset=utf-8", headers=headers
    )
