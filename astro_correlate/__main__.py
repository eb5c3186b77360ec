import sys

from astro_correlate.cli import main

sys.exit(main())
