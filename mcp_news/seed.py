from __future__ import annotations

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

FallbackDataset = Tuple[Mapping[str, Any], ...]


def _freeze(records) -> FallbackDataset:
    return tuple(MappingProxyType(dict(r)) for r in records if isinstance(r, Mapping))


# Last-known-good snapshot served when the upstream is unusable.
SEED_NEWS: FallbackDataset = _freeze([
    {
        "id": "f1",
        "title": "OpenAI lancia 'SearchGPT': Sfida diretta a Google nel search",
        "summary": "Un nuovo prototipo di ricerca con intelligenza artificiale progettato per offrire "
                   "risposte rapide e dirette con fonti citate in modo chiaro.",
        "url": "https://openai.com/blog",
        "source": {"name": "TECHCRUNCH", "domain": "techcrunch.com"},
        "published_at": "2024-07-25T18:30:00Z",
        "tags": ["Nuovi Modelli"],
        "language": "it",
        "score": {"freshness": 0.95, "relevance": 0.9, "popularity": 0.85},
    },
    {
        "id": "f2",
        "title": "Meta rilascia Llama 3.1: Il più grande modello open-source di sempre",
        "summary": "Con 405 miliardi di parametri, Mark Zuckerberg punta a democratizzare l'accesso "
                   "ai modelli di frontiera sfidando il dominio dei modelli chiusi.",
        "url": "https://meta.com",
        "source": {"name": "THE VERGE", "domain": "theverge.com"},
        "published_at": "2024-07-25T17:00:00Z",
        "tags": ["Nuovi Modelli", "Machine Learning"],
        "language": "it",
        "score": {"freshness": 0.88, "relevance": 0.95, "popularity": 0.92},
    },
    {
        "id": "f3",
        "title": "NVIDIA annuncia l'architettura Blackwell per il calcolo AI",
        "summary": "La nuova GPU promette prestazioni fino a 30 volte superiori per l'inferenza di "
                   "modelli linguistici di grandi dimensioni, riducendo drasticamente i consumi.",
        "url": "https://nvidia.com",
        "source": {"name": "WIRED", "domain": "wired.com"},
        "published_at": "2024-07-25T14:00:00Z",
        "tags": ["Hardware"],
        "language": "it",
        "score": {"freshness": 0.85, "relevance": 0.9, "popularity": 0.98},
    },
    {
        "id": "f4",
        "title": "L'Unione Europea approva formalmente l'AI Act",
        "summary": "La prima legge globale sull'intelligenza artificiale introduce regole basate sul "
                   "rischio, vietando alcune pratiche e imponendo obblighi ai modelli più potenti.",
        "url": "https://europa.eu",
        "source": {"name": "REUTERS", "domain": "reuters.com"},
        "published_at": "2024-07-25T07:00:00Z",
        "tags": ["Regolamentazione", "Etica AI"],
        "language": "it",
        "score": {"freshness": 0.8, "relevance": 0.99, "popularity": 0.9},
    },
    {
        "id": "f5",
        "title": "Google DeepMind presenta AlphaFold 3",
        "summary": "Il nuovo modello è in grado di prevedere la struttura e le interazioni di tutte le "
                   "molecole della vita, aprendo nuove frontiere per la biologia e la medicina.",
        "url": "https://deepmind.google",
        "source": {"name": "NATURE", "domain": "nature.com"},
        "published_at": "2024-07-24T19:00:00Z",
        "tags": ["Machine Learning"],
        "language": "it",
        "score": {"freshness": 0.75, "relevance": 0.95, "popularity": 0.8},
    },
    {
        "id": "f6",
        "title": "Ricerca sulle allucinazioni: Nuove tecniche di 'Grounding'",
        "summary": "Un nuovo framework accademico propone metodi innovativi per ridurre le "
                   "allucinazioni nei LLM attraverso il recupero dinamico di fonti verificate.",
        "url": "https://arxiv.org",
        "source": {"name": "MIT TECH REVIEW", "domain": "technologyreview.com"},
        "published_at": "2024-07-23T19:00:00Z",
        "tags": ["Etica AI", "Machine Learning"],
        "language": "it",
        "score": {"freshness": 0.7, "relevance": 0.85, "popularity": 0.6},
    },
])


def load_fallback_dataset(path: Optional[Union[str, Path]] = None) -> FallbackDataset:
    """
    Load the fallback records from a JSON file, or return the built-in seed.

    The file may hold a JSON array or an object with an ``items`` array.
    Raises ConfigurationError when the file is missing, unreadable or empty.
    """
    if path is None:
        return SEED_NEWS
    p = Path(path)
    try:
        doc = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Fallback dataset not found: {p}") from e
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Fallback dataset unreadable: {p} ({e})") from e
    if isinstance(doc, dict):
        doc = doc.get("items")
    if not isinstance(doc, list):
        raise ConfigurationError(f"Fallback dataset must be a JSON array: {p}")
    records = _freeze(doc)
    if not records:
        raise ConfigurationError(f"Fallback dataset is empty: {p}")
    logger.info("Loaded %d fallback records from %s", len(records), p)
    return records
