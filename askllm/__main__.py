import sys
import traceback

from .cli import main

if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
    except Exception:
        print("CRITICAL ERROR CAUGHT:", file=sys.stderr)
        traceback.print_exc()
        sys.exit(1)
