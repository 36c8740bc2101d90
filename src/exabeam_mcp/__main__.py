from exabeam_mcp.mcp_server import main

main()
