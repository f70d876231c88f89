from deployflow.cli import main

raise SystemExit(main())
