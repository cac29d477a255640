import uvicorn

from vendecasas.config import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run("vendecasas.main:app", host="0.0.0.0", port=settings.PORT, log_config=None)


if __name__ == "__main__":
    main()
