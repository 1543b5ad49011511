import sys

from ctcontours.pipeline.cli import main

if __name__ == '__main__':
    sys.exit(main())
