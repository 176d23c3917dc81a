"""FBX scene graph: definitions, objects, connections and the scene loader."""
