from lr.cli.app import main

main()
