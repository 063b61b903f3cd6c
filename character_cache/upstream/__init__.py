"""외부 원천(Rick & Morty API) 클라이언트 모듈"""

from .client import DEFAULT_BASE_URL, RickAndMortyClient

__all__ = ["DEFAULT_BASE_URL", "RickAndMortyClient"]
