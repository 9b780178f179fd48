from shiplane.cli.app import main

main()
