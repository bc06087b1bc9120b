import uvicorn

from carecrew import config


def main() -> None:
    uvicorn.run("carecrew.main:app", host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
