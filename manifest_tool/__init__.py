from manifest_tool import oci
