from arcnav.cli import main

main()
