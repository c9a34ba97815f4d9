"""
Translation HTTP API Router

Exposes the translation client for one-off and batch requests (chat
messages, room titles) outside the live caption path.
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from meetlingo.api.v1.deps import get_current_user
from meetlingo.models.user import User
from meetlingo.services.translation import LANGUAGES, get_translation_client

router = APIRouter(prefix="/translate", tags=["translate"])


class TranslateIn(BaseModel):
    text: str | None = None
    texts: list[str] | None = None
    target: str
    source: str = "auto"


@router.post("")
async def translate(req: TranslateIn, user: User = Depends(get_current_user)):
    """
    Translate one text or a list of texts.

    Never fails because of the translation backend: degraded items carry
    the original text and `degraded: true`.
    """
    texts = req.texts if req.texts is not None else ([req.text] if req.text is not None else None)
    if not texts:
        raise HTTPException(status_code=400, detail="Text cannot be empty")

    client = get_translation_client()
    results = await client.translate_many(texts, req.target, req.source)
    items = [
        {
            "text": r.text,
            "detectedLanguage": r.detected_language,
            "degraded": r.degraded,
            "untranslated": r.untranslated(src),
        }
        for src, r in zip(texts, results)
    ]
    return {"success": True, "data": {"items": items}}


@router.get("/languages")
async def list_languages(user: User = Depends(get_current_user)):
    return {"success": True, "data": {"languages": [
        {"code": code, "label": label} for code, label in LANGUAGES.items()
    ]}}
