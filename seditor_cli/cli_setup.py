"""Interactive setup wizard and LLM configuration commands for Seditor CLI."""

from __future__ import annotations

from typing import Optional, Tuple

import typer

from . import config_manager

# Provider model options
PROVIDER_MODELS = {
    "gemini": [
        "gemini-2.0-flash",
        "gemini-1.5-pro",
        "gemini-1.5-flash",
    ],
    "openai": [
        "gpt-4o",
        "gpt-4-turbo",
        "gpt-3.5-turbo",
    ],
    "openrouter": [
        "google/gemini-2.0-flash-exp:free",
        "meta-llama/llama-3.3-70b-instruct:free",
        "deepseek/deepseek-chat-v3-0324:free",
        "anthropic/claude-sonnet-4",
    ],
    "groq": [
        "llama-3.3-70b-versatile",
        "llama-3.1-8b-instant",
        "gemma2-9b-it",
    ],
    "anthropic": [
        "claude-3-5-sonnet-20241022",
        "claude-3-opus-20240229",
    ],
}

# All supported providers for quick lookup
ALL_PROVIDERS = ["gemini", "openai", "openrouter", "groq", "anthropic", "ollama"]


def print_header(title: str):
    typer.echo("")
    typer.echo(typer.style("╭──────────────────────────────────────────────╮", fg=typer.colors.CYAN))
    typer.echo(typer.style("│", fg=typer.colors.CYAN) + typer.style(f"   {title}".ljust(46), bold=True) + typer.style("│", fg=typer.colors.CYAN))
    typer.echo(typer.style("╰──────────────────────────────────────────────╯", fg=typer.colors.CYAN))


def print_success(message: str):
    typer.echo(typer.style(f"✅ {message}", fg=typer.colors.GREEN))


def print_error(message: str):
    typer.echo(typer.style(f"❌ {message}", fg=typer.colors.RED), err=True)


def print_info(message: str):
    typer.echo(typer.style(f"ℹ️  {message}", fg=typer.colors.BLUE))


def mask_key(api_key: str) -> str:
    """Show only the first characters of an API key."""
    if len(api_key) <= 8:
        return "•" * len(api_key)
    return api_key[:8] + "•" * min(len(api_key) - 8, 16)


def select_provider() -> str:
    """Interactive provider selection.

    Returns:
        Selected provider name
    """
    typer.echo("\nChoose your LLM provider:")
    typer.echo("  1) Gemini      (cloud, free tier available)")
    typer.echo("  2) OpenAI      (cloud, paid)")
    typer.echo("  3) OpenRouter  (cloud, multi-model, free tier available)")
    typer.echo("  4) Groq        (cloud, fast, free tier)")
    typer.echo("  5) Anthropic   (cloud, paid)")
    typer.echo("  6) Ollama      (local, free)")

    provider_map = {str(i): name for i, name in enumerate(ALL_PROVIDERS, 1)}
    while True:
        choice = typer.prompt("\nEnter choice [1-6]", type=str)
        if choice in provider_map:
            return provider_map[choice]
        print_error("Invalid choice. Please enter 1-6.")


def setup_ollama() -> Tuple[str, str]:
    """Setup Ollama provider.

    Returns:
        Tuple of (model, endpoint)
    """
    typer.echo("\n" + typer.style("Setting up Ollama", bold=True))
    typer.echo("━" * 50)

    base = typer.prompt("Ollama endpoint", default="http://127.0.0.1:11434")
    typer.echo("\n⏳ Checking Ollama connection...")
    if not config_manager.validate_ollama_connection(base):
        print_error("Cannot connect to Ollama!")
        print_info("Start Ollama and run this setup again.")
        raise typer.Exit(code=1)
    print_success("Connected to Ollama")

    models = config_manager.get_ollama_models(base)
    if not models:
        print_error("No models found!")
        print_info("Pull a model first: ollama pull qwen2.5-coder:7b")
        raise typer.Exit(code=1)

    typer.echo("\nAvailable models:")
    for i, model in enumerate(models, 1):
        typer.echo(f"  {i}) {model}")

    while True:
        choice = typer.prompt(f"\nSelect model [1-{len(models)}]", type=int)
        if 1 <= choice <= len(models):
            return models[choice - 1], f"{base.rstrip('/')}/api/chat"
        print_error(f"Invalid choice. Please enter a number between 1 and {len(models)}.")


def setup_cloud_provider(provider: str) -> Tuple[str, str]:
    """Setup a cloud provider.

    Returns:
        Tuple of (model, api_key)
    """
    display = {"openrouter": "OpenRouter", "openai": "OpenAI"}.get(provider, provider.title())
    typer.echo("\n" + typer.style(f"Setting up {display}", bold=True))
    typer.echo("━" * 50)

    if provider == "gemini":
        print_info("Get your Gemini API key at: https://aistudio.google.com/apikey")
    elif provider == "openrouter":
        print_info("Get your OpenRouter API key at: https://openrouter.ai/keys")

    api_key = typer.prompt(f"\nEnter your {display} API key", hide_input=True)
    if not api_key.strip():
        print_error("API key cannot be empty!")
        raise typer.Exit(code=1)

    models = PROVIDER_MODELS.get(provider, [])
    typer.echo("\nAvailable models:")
    for i, model in enumerate(models, 1):
        typer.echo(f"  {i}) {model}")

    while True:
        choice = typer.prompt(f"\nSelect model [1-{len(models)}] or enter custom model name", type=str)
        try:
            idx = int(choice)
            if 1 <= idx <= len(models):
                return models[idx - 1], api_key.strip()
            print_error(f"Invalid choice. Please enter a number between 1 and {len(models)}.")
        except ValueError:
            # Custom model name
            if choice.strip():
                return choice.strip(), api_key.strip()
            print_error("Model name cannot be empty!")


def display_summary(provider: str, model: str, api_key: str = "", endpoint: str = ""):
    typer.echo("\n" + typer.style("✅ Configuration Summary", bold=True, fg=typer.colors.GREEN))
    typer.echo("━" * 50)
    typer.echo(f"Provider: {typer.style(provider, fg=typer.colors.CYAN)}")
    typer.echo(f"Model: {typer.style(model, fg=typer.colors.CYAN)}")
    if api_key:
        typer.echo(f"API Key: {mask_key(api_key)}")
    if endpoint:
        typer.echo(f"Endpoint: {endpoint}")
    typer.echo("")


def setup():
    """Interactive setup wizard for LLM provider configuration."""
    print_header("🔧 Seditor LLM Setup Wizard")

    provider = select_provider()
    api_key = ""
    endpoint = ""
    if provider == "ollama":
        model, endpoint = setup_ollama()
    else:
        model, api_key = setup_cloud_provider(provider)
        endpoint = config_manager.get_provider_config(provider).get("endpoint", "")

    display_summary(provider, model, api_key, endpoint)

    if not typer.confirm(f"Save to {config_manager.CONFIG_FILE}?", default=True):
        print_info("Configuration not saved.")
        raise typer.Exit(code=0)

    if not config_manager.save_config(provider, model, api_key, endpoint):
        print_error("Failed to save configuration!")
        raise typer.Exit(code=1)

    print_success(f"Configuration saved to {config_manager.CONFIG_FILE}")
    typer.echo("\nExample commands:")
    typer.echo("  seditor run index.html 'Make the header sticky'")
    typer.echo("  seditor preview index.html")
    typer.echo("  seditor apply index.html")


def set_llm(
    provider: str = typer.Argument(..., help="LLM provider: gemini, openai, openrouter, groq, anthropic, ollama"),
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model name (uses provider default if not set)."),
    api_key: Optional[str] = typer.Option(None, "--api-key", "-k", help="API key for cloud providers."),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", "-e", help="Custom endpoint URL."),
    temperature: Optional[float] = typer.Option(None, "--temperature", "-t", help="Sampling temperature."),
    top_p: Optional[float] = typer.Option(None, "--top-p", help="Nucleus sampling threshold."),
):
    """Quickly switch LLM provider without the full setup wizard.

    Examples:
        seditor set-llm gemini -k YOUR_API_KEY
        seditor set-llm openrouter -k YOUR_API_KEY -m google/gemini-2.0-flash-exp:free
        seditor set-llm ollama -m qwen2.5-coder:7b
    """
    provider = provider.lower().strip()
    if provider not in ALL_PROVIDERS:
        print_error(f"Unknown provider '{provider}'. Choose from: {', '.join(ALL_PROVIDERS)}")
        raise typer.Exit(code=1)

    current = config_manager.load_config()
    defaults = config_manager.get_provider_config(provider)
    resolved_model = model or defaults.get("model", "")
    resolved_endpoint = endpoint or defaults.get("endpoint", "")

    resolved_api_key = api_key or ""
    if config_manager.provider_requires_key(provider) and not resolved_api_key:
        if current.get("provider") == provider and current.get("api_key"):
            resolved_api_key = current["api_key"]
            print_info(f"Reusing existing API key for {provider}")
        else:
            resolved_api_key = typer.prompt(f"Enter your {provider} API key", hide_input=True)

    success = config_manager.save_config(
        provider,
        resolved_model,
        resolved_api_key,
        resolved_endpoint,
        temperature=temperature,
        top_p=top_p,
    )
    if not success:
        print_error("Failed to save configuration!")
        raise typer.Exit(code=1)

    print_success(f"LLM provider set to: {provider}")
    typer.echo(f"  Provider: {typer.style(provider, fg=typer.colors.CYAN)}")
    typer.echo(f"  Model:    {typer.style(resolved_model, fg=typer.colors.CYAN)}")
    if resolved_endpoint:
        typer.echo(f"  Endpoint: {resolved_endpoint}")


def unset_llm(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
):
    """Remove the [llm] section so the built-in defaults apply again."""
    if not config_manager.CONFIG_FILE.exists():
        print_info("No LLM configuration found. Nothing to unset.")
        raise typer.Exit(code=0)

    if not yes and not typer.confirm("Remove the saved LLM configuration (including API keys)?", default=False):
        print_info("Cancelled.")
        raise typer.Exit(code=0)

    if not config_manager.clear_llm_config():
        print_error("Failed to reset configuration!")
        raise typer.Exit(code=1)
    print_success("LLM configuration removed. Defaults will be used on the next run.")


def show_llm():
    """Show current LLM provider configuration."""
    print_header("🔍 LLM Configuration")

    cfg = config_manager.load_config()
    pipeline = config_manager.load_pipeline_config()
    provider = cfg.get("provider", config_manager.DEFAULT_PROVIDER)
    api_key = cfg.get("api_key", "")

    typer.echo(f"  Provider     {typer.style(provider.upper(), bold=True)}")
    typer.echo(f"  Model        {typer.style(cfg.get('model', ''), bold=True)}")
    if cfg.get("endpoint"):
        typer.echo(f"  Endpoint     {typer.style(cfg['endpoint'], dim=True)}")
    if api_key:
        typer.echo(f"  API Key      {mask_key(api_key)}")
    else:
        typer.echo(f"  API Key      {typer.style('(not set)', dim=True)}")
    typer.echo(f"  Temperature  {cfg.get('temperature')}")
    typer.echo(f"  Top-p        {cfg.get('top_p')}")
    typer.echo(f"  Pacing       {pipeline['pace_seconds']}s per stage")
    typer.echo(f"  Config       {typer.style(str(config_manager.CONFIG_FILE), dim=True)}")
    typer.echo("")
