from whiteriver.cli import main

raise SystemExit(main())
