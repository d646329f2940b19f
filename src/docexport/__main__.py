from .cli import main as _cli_main


def main() -> None:
    # Delegate to CLI main; this lets `python -m docexport` behave like `docexport`.
    _cli_main()


if __name__ == "__main__":
    main()
