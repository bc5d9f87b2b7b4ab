from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class SendMessageRequest(BaseModel):
    """
    Body of POST /messages.
    Required fields are optional here so the router can answer with a readable
    400 instead of a validation error.
    """
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    to: Optional[Union[str, List[str]]] = None
    from_number: Optional[str] = Field(default=None, alias="from")
    target_lang: Optional[str] = Field(default=None, alias="targetLang")
    source_lang: Optional[str] = Field(default=None, alias="sourceLang")
    user_id: Optional[str] = Field(default=None, alias="userId")
    strict: Optional[bool] = Field(
        default=False,
        description="Report translation failures as errors instead of sending the untranslated text."
    )


class TranslateRequest(BaseModel):
    """Body of POST /translate."""
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = None
    target_lang: Optional[str] = Field(default=None, alias="targetLang")
    prompt: Optional[str] = None


class TranslateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    translated_text: str = Field(alias="translatedText")
    provider: str
    model: str
