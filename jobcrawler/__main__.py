"""Allow running as `python -m jobcrawler`."""

from jobcrawler.cli import main

if __name__ == '__main__':
    main()
