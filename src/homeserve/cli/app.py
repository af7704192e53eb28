"""Typer CLI wiring homeserve services."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import Any, TypeVar
from uuid import UUID

import typer

from homeserve.domain import (
    Actor,
    ActorId,
    RequestEvent,
    RequestId,
    RequestLogEntry,
    ServiceRequest,
)
from homeserve.logging_setup import configure_logging
from homeserve.orchestration import LifecycleError

from .deps import get_container

T = TypeVar("T")

app = typer.Typer(help="homeserve service-request command-line interface")
actors_app = typer.Typer(help="Identity directory")
requests_app = typer.Typer(help="Service request lifecycle")
app.add_typer(actors_app, name="actors")
app.add_typer(requests_app, name="requests")


def _acting_as() -> Any:
    return typer.Option(..., "--as", help="Id of the acting actor")


@app.callback()
def main_callback() -> None:
    configure_logging(get_container().settings.log_level)


def _parse_uuid(value: str, label: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise typer.BadParameter(f"{label} must be a valid UUID") from exc


def _run(factory: Callable[[], Awaitable[T]]) -> T:
    """Run a coroutine, turning engine errors into a non-zero exit."""

    try:
        return asyncio.run(factory())
    except LifecycleError as exc:
        typer.echo(f"error[{exc.code}]: {exc}", err=True)
        raise typer.Exit(code=1) from exc


async def _resolve_caller(actor_id: str) -> Actor:
    container = get_container()
    return await container.directory.get(ActorId(_parse_uuid(actor_id, "--as")))


def _split(values: str | None) -> list[str]:
    if not values:
        return []
    return [value.strip() for value in values.split(",") if value.strip()]


def _echo_request(request: ServiceRequest) -> None:
    typer.echo(request.model_dump_json(indent=2))


def _echo_request_rows(requests: Sequence[ServiceRequest]) -> None:
    if not requests:
        typer.echo("No requests found")
        return
    for request in requests:
        typer.echo(
            f"{request.id}\t{request.status.value}\t{request.category.value}\t{request.title}"
        )


@app.command("show-settings")
def show_settings() -> None:
    """Print the resolved application settings."""

    settings = get_container().settings
    typer.echo("Environment:\t" + settings.environment)
    typer.echo("Store:\t\t" + settings.store)
    typer.echo("Database URL:\t" + settings.database_url)
    typer.echo("Log level:\t" + settings.log_level)


@actors_app.command("register")
def register_actor(
    name: str,
    email: str,
    role: str = typer.Option("client", help="client, professional or admin"),
    skills: str | None = typer.Option(None, help="Comma separated skill tags"),
) -> None:
    """Create an actor in the identity directory."""

    directory = get_container().directory
    actor = _run(
        lambda: directory.register(name=name, email=email, role=role, skills=_split(skills))
    )
    typer.echo(f"Registered {actor.role.value} {actor.id}")


@actors_app.command("update")
def update_actor(
    acting_as: str = _acting_as(),
    name: str | None = typer.Option(None),
    role: str | None = typer.Option(None),
    skills: str | None = typer.Option(None, help="Comma separated skill tags"),
) -> None:
    """Update the acting actor's own profile."""

    directory = get_container().directory

    async def _update() -> Actor:
        caller = await _resolve_caller(acting_as)
        return await directory.update_profile(
            caller,
            caller.id,
            name=name,
            role=role,
            skills=_split(skills) if skills is not None else None,
        )

    actor = _run(_update)
    typer.echo(actor.model_dump_json(indent=2))


@actors_app.command("show")
def show_actor(actor_id: str) -> None:
    """Display an actor."""

    directory = get_container().directory
    target = ActorId(_parse_uuid(actor_id, "actor-id"))
    actor = _run(lambda: directory.get(target))
    typer.echo(actor.model_dump_json(indent=2))


@app.command("professionals")
def list_professionals(
    skill: str | None = typer.Option(None, help="Only professionals with this skill"),
) -> None:
    """List professionals, optionally filtered by skill."""

    directory = get_container().directory
    professionals = _run(lambda: directory.list_professionals(skill))
    if not professionals:
        typer.echo("No professionals found")
        return
    for actor in professionals:
        tags = ",".join(sorted(tag.value for tag in actor.skills))
        typer.echo(f"{actor.id}\t{actor.name}\t{tags}")


@requests_app.command("create")
def create_request(
    title: str,
    description: str,
    acting_as: str = _acting_as(),
    category: str = typer.Option(..., help="plumbing, electrical, carpentry, painting, cleaning"),
    address: str = typer.Option(...),
    city: str = typer.Option(...),
    state: str = typer.Option(...),
    zip_code: str = typer.Option(..., "--zip"),
    urgency: str | None = typer.Option(None, help="low, medium, high or emergency"),
    budget_min: float | None = typer.Option(None),
    budget_max: float | None = typer.Option(None),
    scheduled: str | None = typer.Option(None, help="ISO-8601 scheduled date"),
) -> None:
    """Create a service request as the acting client."""

    engine = get_container().lifecycle_engine
    budget = None
    if budget_min is not None or budget_max is not None:
        budget = {"min": budget_min, "max": budget_max}

    async def _create() -> ServiceRequest:
        caller = await _resolve_caller(acting_as)
        return await engine.create_request(
            caller,
            title=title,
            description=description,
            category=category,
            location={"address": address, "city": city, "state": state, "zip_code": zip_code},
            urgency=urgency,
            budget=budget,
            scheduled_date=scheduled,
        )

    request = _run(_create)
    typer.echo(f"Created request {request.id}")


@requests_app.command("assign")
def assign_request(
    request_id: str,
    professional_id: str,
    acting_as: str = _acting_as(),
) -> None:
    """Send a pending request to a professional."""

    engine = get_container().lifecycle_engine
    target = RequestId(_parse_uuid(request_id, "request-id"))
    professional = ActorId(_parse_uuid(professional_id, "professional-id"))

    async def _assign() -> ServiceRequest:
        caller = await _resolve_caller(acting_as)
        return await engine.assign_professional(caller, target, professional)

    request = _run(_assign)
    typer.echo(f"Request {request.id} assigned to {request.professional_id}")


@requests_app.command("advance")
def advance_request(
    request_id: str,
    status: str,
    acting_as: str = _acting_as(),
) -> None:
    """Move a request to a target status."""

    engine = get_container().lifecycle_engine
    target = RequestId(_parse_uuid(request_id, "request-id"))

    async def _advance() -> ServiceRequest:
        caller = await _resolve_caller(acting_as)
        return await engine.advance_status(caller, target, status)

    request = _run(_advance)
    typer.echo(f"Request {request.id} is now {request.status.value}")


def _event_command(event: RequestEvent) -> Callable[..., None]:
    def command(request_id: str, acting_as: str = _acting_as()) -> None:
        engine = get_container().lifecycle_engine
        target = RequestId(_parse_uuid(request_id, "request-id"))

        async def _apply() -> ServiceRequest:
            caller = await _resolve_caller(acting_as)
            return await engine.apply_event(caller, target, event)

        request = _run(_apply)
        typer.echo(f"Request {request.id} is now {request.status.value}")

    command.__doc__ = f"Fire the '{event.value}' event as the assigned professional."
    return command


for _event in (
    RequestEvent.ACCEPT,
    RequestEvent.DECLINE,
    RequestEvent.START,
    RequestEvent.COMPLETE,
    RequestEvent.CANCEL,
):
    requests_app.command(_event.value)(_event_command(_event))


@requests_app.command("show")
def show_request(request_id: str, acting_as: str = _acting_as()) -> None:
    """Display a request visible to the acting actor."""

    engine = get_container().lifecycle_engine
    target = RequestId(_parse_uuid(request_id, "request-id"))

    async def _show() -> ServiceRequest:
        caller = await _resolve_caller(acting_as)
        return await engine.get_request(caller, target)

    _echo_request(_run(_show))


@requests_app.command("history")
def request_history(request_id: str, acting_as: str = _acting_as()) -> None:
    """Display the committed transitions of a request."""

    engine = get_container().lifecycle_engine
    target = RequestId(_parse_uuid(request_id, "request-id"))

    async def _history() -> list[RequestLogEntry]:
        caller = await _resolve_caller(acting_as)
        return await engine.history(caller, target)

    for entry in _run(_history):
        previous = entry.previous_status.value if entry.previous_status else "-"
        typer.echo(
            f"{entry.created_at.isoformat()}\t{entry.event.value}\t"
            f"{previous} -> {entry.next_status.value}\t{entry.actor_id}"
        )


@requests_app.command("mine")
def my_requests(acting_as: str = _acting_as()) -> None:
    """List requests created by the acting client, newest first."""

    views = get_container().views

    async def _mine() -> list[ServiceRequest]:
        return await views.list_mine(await _resolve_caller(acting_as))

    _echo_request_rows(_run(_mine))


@requests_app.command("incoming")
def incoming_requests(acting_as: str = _acting_as()) -> None:
    """List open requests assigned to the acting professional, newest first."""

    views = get_container().views

    async def _incoming() -> list[ServiceRequest]:
        return await views.list_incoming(await _resolve_caller(acting_as))

    _echo_request_rows(_run(_incoming))
