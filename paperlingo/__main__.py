from paperlingo.cli.main import main

main()
