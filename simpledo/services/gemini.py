# simpledo/services/gemini.py

from typing import List, Optional
from google import genai
from google.genai import errors, types
from loguru import logger

from ..exceptions import GeminiAPIError
from ..models import SearchAnswer, Source

OCR_SYSTEM_PROMPT = (
    "You are an Optical Character Recognition (OCR) expert. Your task is to accurately extract "
    "all legible text from the provided image. Respond only with the extracted text, formatted "
    "exactly as it appears in the image, preserving line breaks and spacing where possible. "
    "Do not add any introductory phrases, explanations, or analysis."
)
OCR_USER_QUERY = "Extract the text from this image."

SEARCH_SYSTEM_PROMPT = (
    "You are a concise, helpful research assistant. Respond to the user's query by summarizing "
    "the most important information found via Google Search. If source material is found, you "
    "MUST base your response only on that material. Format your answer in Markdown, using "
    "headings, emphasis and lists where they help readability."
)

NO_MEANINGFUL_RESPONSE = "No meaningful response generated. Try a different query."
MISSING_KEY_MESSAGE = "Gemini API key is not configured. Set GEMINI_API_KEY to your Google AI Studio API key."


class GeminiClient:
    def __init__(
        self,
        api_key: str,
        model: str,
        timeout: float = 60,
        client: Optional[genai.Client] = None,
    ):
        """
        Wraps a google-genai client. One generate_content call per method,
        retries are the caller's business.

        The SDK client is built on first use, so the app starts without a key
        and only the Gemini routes fail until one is configured.
        """
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            if not self.api_key:
                raise GeminiAPIError(MISSING_KEY_MESSAGE)
            self._client = genai.Client(
                api_key=self.api_key,
                http_options=types.HttpOptions(timeout=int(self.timeout * 1000)),
            )
        return self._client

    def _generate(self, contents, config: types.GenerateContentConfig) -> types.GenerateContentResponse:
        try:
            return self.client.models.generate_content(model=self.model, contents=contents, config=config)
        except errors.APIError as e:
            message = f"API call failed with status: {e.code}"
            if e.message:
                message += f" ({e.message})"
            raise GeminiAPIError(message, status_code=e.code) from e

    @staticmethod
    def _first_candidate(response: types.GenerateContentResponse) -> Optional[types.Candidate]:
        return response.candidates[0] if response.candidates else None

    @staticmethod
    def _candidate_text(candidate: Optional[types.Candidate]) -> str:
        if candidate is None or candidate.content is None or not candidate.content.parts:
            return ""
        # Grounded answers may arrive split over several text parts
        return "".join(part.text for part in candidate.content.parts if part.text)

    @staticmethod
    def _sources(candidate: types.Candidate) -> List[Source]:
        metadata = candidate.grounding_metadata
        if metadata is None or not metadata.grounding_chunks:
            return []
        sources = []
        for chunk in metadata.grounding_chunks:
            web = chunk.web
            if web is not None and web.uri and web.title:
                sources.append(Source(uri=web.uri, title=web.title))
        return sources

    def extract_text(self, image: bytes, mime_type: str) -> str:
        """
        Sends the image with the OCR instruction and returns the text Gemini
        read from it, or "" if the response holds none.
        """
        contents = [
            types.Part.from_text(text=OCR_USER_QUERY),
            types.Part.from_bytes(data=image, mime_type=mime_type),
        ]
        config = types.GenerateContentConfig(system_instruction=OCR_SYSTEM_PROMPT)
        logger.info(f"Sending {mime_type} image ({len(image)} bytes) to Gemini for text extraction...")
        response = self._generate(contents, config)
        return self._candidate_text(self._first_candidate(response))

    def grounded_search(self, query: str) -> SearchAnswer:
        """
        Asks Gemini to answer `query` with Google Search grounding. The web
        sources it cites come back alongside the Markdown answer.
        """
        config = types.GenerateContentConfig(
            system_instruction=SEARCH_SYSTEM_PROMPT,
            tools=[types.Tool(google_search=types.GoogleSearch())],
        )
        logger.info(f"Running grounded search for a {len(query)} character query...")
        response = self._generate(query, config)
        candidate = self._first_candidate(response)
        text = self._candidate_text(candidate)
        if not text:
            logger.warning("Gemini returned no usable answer for the search")
            return SearchAnswer(text=NO_MEANINGFUL_RESPONSE, sources=[])
        return SearchAnswer(text=text, sources=self._sources(candidate))
