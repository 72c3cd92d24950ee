from lnpm.cli import main

main()
