from commons_search.mcp_server import main

main()
