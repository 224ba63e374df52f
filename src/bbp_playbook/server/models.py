"""Pydantic models for the REST server."""

from __future__ import annotations

from pydantic import BaseModel, Field


class ParamsRequest(BaseModel):
    task_id: str
    params: dict[str, str | None] = Field(default_factory=dict)
    scope: str | None = None


class GenerateRequest(ParamsRequest):
    mode: str


class ApiTask(BaseModel):
    id: str
    label: str
    name: str
    phase: str | None = None
    tags: list[str]
    notes: list[str]
    modes: list[str]
    ready: bool
    missing: list[str]


class ApiMode(BaseModel):
    name: str
    label: str


class ApiReadiness(BaseModel):
    task_id: str
    ready: bool
    requires: list[str]
    missing: list[str]
    summary: str
    message: str


class ApiCommands(BaseModel):
    task_id: str
    mode: str
    commands: list[str]
    text: str


class ApiDone(BaseModel):
    task_id: str
    scope: str
    marked: list[str]
    completed: list[str]
    persisted: bool
    warning: str | None = None


class ApiReset(BaseModel):
    scope: str
    persisted: bool
    warning: str | None = None
