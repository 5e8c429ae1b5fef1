from memo_tasks.cli.main import main

main()
