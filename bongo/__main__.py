"""Entry point для запуска через python -m bongo.

Запускает uvicorn сервер с FastAPI приложением.

Использование:
    python -m bongo              # Production mode (без hot-reload)
    python -m bongo --dev        # Development mode (с hot-reload)
    python -m bongo --help       # Показать справку
"""

import argparse

import uvicorn


def main() -> None:
    """Запустить приложение через uvicorn."""
    parser = argparse.ArgumentParser(
        description="Bongo: шлюз генерации через Amazon Bedrock с учётом токенов",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Примеры:
    python -m bongo              # Production mode
    python -m bongo --dev        # Development mode с hot-reload
    python -m bongo --port 3000  # Указать кастомный порт
        """,
    )
    parser.add_argument(
        "--dev",
        action="store_true",
        help="Включить hot-reload для разработки",
    )
    parser.add_argument(
        "--host",
        default="0.0.0.0",
        help="Хост для сервера (по умолчанию: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Порт для сервера (по умолчанию: 8000)",
    )
    args = parser.parse_args()

    if args.dev:
        uvicorn.run(
            "bongo.main:app",
            host=args.host,
            port=args.port,
            reload=True,
            reload_includes=["bongo/**/*.py", "config.yaml"],
            reload_excludes=[".venv/**", "data/**", "tests/**", ".git/**"],
        )
    else:
        uvicorn.run(
            "bongo.main:app",
            host=args.host,
            port=args.port,
            reload=False,
        )


if __name__ == "__main__":
    main()
