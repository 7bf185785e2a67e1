"""Run the mcp-helm command line tool with `python -m mcp_helm`."""

from mcp_helm.tool.mcp_helm import main

if __name__ == "__main__":
    main()
