from maxpower.cli import main

raise SystemExit(main())
