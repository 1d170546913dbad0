from cnamodel.cli.main import main

main()
