"""Command-line demo: send one prompt, optionally streaming or with functions."""

from __future__ import annotations

import asyncio
import json
import logging
import random
import sys
from typing import Annotated, Literal

import click
from rich.console import Console

from openai_wrapper.config import load_config
from openai_wrapper.core.controller import CompletionController
from openai_wrapper.errors import OpenAIWrapperError
from openai_wrapper.events.bus import EventBus
from openai_wrapper.functions.decorator import Param, function_tool
from openai_wrapper.llm.client import ChatClient
from openai_wrapper.types import ChatCompletion, CompletionEvent, EventType, Message

console = Console()


# ---------------------------------------------------------------------------
# Demo functions
# ---------------------------------------------------------------------------

@function_tool
def add(
    a: Annotated[int, Param("The first number to add")],
    b: Annotated[int, Param("The second number to add")],
) -> str:
    """Adds two integers together and returns the sum."""
    return str(a + b)


@function_tool
def get_current_weather(
    location: Annotated[str, Param("The city and state, e.g. San Francisco, CA")],
    unit: Literal["celsius", "fahrenheit"] = "celsius",
) -> str:
    """Get the current weather in a given location."""
    temperature = random.randint(-5, 35)
    if unit == "fahrenheit":
        temperature = temperature * 9 // 5 + 32
    return json.dumps({"location": location, "temperature": temperature, "unit": unit})


DEMO_FUNCTIONS = [add.descriptor, get_current_weather.descriptor]


# ---------------------------------------------------------------------------
# Display
# ---------------------------------------------------------------------------

def _print_event(event: CompletionEvent) -> None:
    if event.type is EventType.FUNCTION_REQUESTED:
        console.print(f"[dim]-> {event.data['name']}({event.data['arguments']})[/dim]")
    elif event.type is EventType.FUNCTION_EXECUTED:
        console.print(f"[dim]<- {event.data['result']}[/dim]")
    elif event.type is EventType.FUNCTION_ERROR:
        console.print(f"[yellow]<- {event.data['result']}[/yellow]")
    elif event.type is EventType.FUNCTION_NOT_FOUND:
        console.print(f"[yellow]Unknown function requested: {event.data['name']}[/yellow]")
    elif event.type is EventType.FUNCTION_DUPLICATE:
        console.print(f"[yellow]Repeated call to {event.data['name']}, functions disabled[/yellow]")


def _print_delta(delta: ChatCompletion) -> None:
    choice = delta.first_choice
    if choice and choice.delta and choice.delta.content:
        console.print(choice.delta.content, end="", markup=False, highlight=False)


async def _run_chat(
    client: ChatClient,
    controller: CompletionController,
    messages: list[Message],
    functions: bool,
) -> str:
    try:
        completion = await controller.get_chat_completion(
            messages, functions=DEMO_FUNCTIONS if functions else None,
        )
    finally:
        await client.close()
    return completion.content


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
def main(verbose: bool) -> None:
    """openai-wrapper - chat completions from the command line."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.WARNING)


@main.command()
@click.argument("prompt")
@click.option("--config", "-c", "config_path", default=None, help="Path to openai_wrapper.yaml")
@click.option("--model", "-m", default=None, help="Model name")
@click.option("--temperature", "-t", type=float, default=None, help="Sampling temperature")
@click.option("--system", "-s", "system_text", default=None, help="System message")
@click.option("--stream", is_flag=True, help="Stream the answer as it is generated")
@click.option("--demo-functions", is_flag=True, help="Expose add() and get_current_weather()")
def chat(
    prompt: str,
    config_path: str | None,
    model: str | None,
    temperature: float | None,
    system_text: str | None,
    stream: bool,
    demo_functions: bool,
) -> None:
    """Send PROMPT and print the answer."""
    spec = load_config(config_path)
    spec.options = spec.options.with_overrides(model=model, temperature=temperature)
    if not spec.api_key:
        console.print("[red]No API key: set OPENAI_API_KEY or api_key in the config file[/red]")
        sys.exit(2)

    messages: list[Message] = []
    if system_text:
        messages.append(Message.system(system_text))
    messages.append(Message.user(prompt))

    event_bus = EventBus()
    event_bus.subscribe("*", _print_event)
    client = ChatClient(spec)
    controller = CompletionController(client, event_bus=event_bus)

    try:
        if stream:
            try:
                controller.get_streaming_chat_completion(
                    messages, _print_delta,
                    functions=DEMO_FUNCTIONS if demo_functions else None,
                )
            finally:
                asyncio.run(client.close())
            console.print()
        else:
            answer = asyncio.run(_run_chat(client, controller, messages, demo_functions))
            console.print(answer, markup=False, highlight=False)
    except OpenAIWrapperError as e:
        console.print(f"[red]{type(e).__name__}: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
