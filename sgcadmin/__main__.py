from sgcadmin.main import main


main()
