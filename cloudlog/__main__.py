"""
Allow running cloudlog as a module: python -m cloudlog
"""
from cloudlog.cli import main


if __name__ == '__main__':
    main()
