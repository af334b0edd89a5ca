from cli.app import cli


def main():
    """Entry point for the cloud-price-exporter CLI. Delegates to cli.app:cli."""
    cli()


if __name__ == "__main__":
    main()
