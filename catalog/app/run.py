"""Lance le serveur HTTP du catalogue (uvicorn) avec l'hôte et le port de la configuration."""

import uvicorn

from catalog.core.container import container


def main() -> None:
    settings = container.settings
    uvicorn.run(
        "catalog.app.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        reload=False,
    )


if __name__ == "__main__":
    main()
