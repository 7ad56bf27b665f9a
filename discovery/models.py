"""Pydantic models describing catalog payloads."""

from __future__ import annotations

from datetime import datetime
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

T = TypeVar("T")


class Movie(BaseModel):
    """A single catalog record as listed by popular and search pages."""

    model_config = ConfigDict(extra="ignore")

    id: int
    title: str = ""
    poster_path: str | None = None
    backdrop_path: str | None = None
    overview: str = ""
    release_date: str = ""
    vote_average: float = 0.0
    vote_count: int = 0

    @field_validator("title", "overview", "release_date", mode="before")
    @classmethod
    def _none_as_blank(cls, value: object) -> object:
        return "" if value is None else value

    def display_release_date(self) -> str:
        return self.release_date or "Unknown date"

    def rating_label(self) -> str:
        return f"{self.vote_average:.1f}"


class Genre(BaseModel):
    id: int
    name: str


class MovieDetails(Movie):
    """Full record returned by the movie details endpoint."""

    runtime: int | None = None
    genres: list[Genre] = Field(default_factory=list)

    def genre_names(self) -> str:
        return ", ".join(genre.name for genre in self.genres)


class CastMember(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    name: str
    character: str = ""
    profile_path: str | None = None


class Credits(BaseModel):
    model_config = ConfigDict(extra="ignore")

    cast: list[CastMember] = Field(default_factory=list)


class Review(BaseModel):
    """A TMDB user review; ids are opaque strings."""

    model_config = ConfigDict(extra="ignore")

    id: str
    author: str = ""
    content: str = ""
    created_at: str = ""


class PagedResponse(BaseModel, Generic[T]):
    """One page of a paged TMDB listing."""

    model_config = ConfigDict(extra="ignore")

    page: int = Field(default=1, ge=1)
    results: list[T] = Field(default_factory=list)
    total_pages: int = Field(default=1, ge=0)
    total_results: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _normalise_total_pages(self) -> "PagedResponse[T]":
        # TMDB reports zero pages for empty searches.
        self.total_pages = max(self.total_pages, self.page, 1)
        return self

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


MoviePage = PagedResponse[Movie]
ReviewPage = PagedResponse[Review]


class MovieDetailsBundle(BaseModel):
    """Details, credits and the first reviews page for one movie."""

    details: MovieDetails
    cast: list[CastMember] = Field(default_factory=list)
    reviews: ReviewPage


class ReviewDraft(BaseModel):
    """User input collected by the review form."""

    author: str
    content: str = Field(alias="review")
    image_uri: str = Field(alias="imageUri")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("author")
    @classmethod
    def _require_author(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Author name is required")
        return value

    @field_validator("content")
    @classmethod
    def _require_body(cls, value: str) -> str:
        value = value.strip()
        if len(value) < 20:
            raise ValueError("Review must be at least 20 characters long")
        return value

    @field_validator("image_uri")
    @classmethod
    def _require_image(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("No image selected. Please pick an image.")
        return value


class UserReview(BaseModel):
    """A review submitted from this client and kept locally."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    movie_id: int
    movie_title: str
    author: str
    content: str
    image_uri: str
    created_at: datetime

    def receipt(self) -> str:
        return f"Review uploaded for {self.movie_title} (ID: {self.movie_id})."

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "movieId": self.movie_id,
            "movieTitle": self.movie_title,
            "author": self.author,
            "review": self.content,
            "imageUri": self.image_uri,
            "createdAt": self.created_at.isoformat(),
        }
