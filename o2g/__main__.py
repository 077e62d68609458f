# CLI Entry

from o2g.cli import main


if __name__ == "__main__":
    main()
