# Route modules, one per dashboard area; `src.api.app` mounts them under the API prefix.
