import sys

from nbody_sim.cli import main

sys.exit(main())
