# Standard Library:
import sys

# Local:
from trafix.cli import main


if __name__ == '__main__':
    # Change output encoding from Windows default of cp1252 to UTF-8:
    sys.stdout.reconfigure(encoding='utf-8')
    sys.exit(main())
